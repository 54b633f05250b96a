from bookswap.schemas.book import (
    BookCondition,
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    ExchangeMethod,
)
from bookswap.schemas.interest import InterestedBook, InterestStatusResponse
from bookswap.schemas.match import (
    BookSummary,
    MatchCreate,
    MatchDecision,
    MatchDetail,
    MatchRespond,
    MatchResponse,
    MatchStatus,
    UserMatchesResponse,
)
from bookswap.schemas.message import (
    ChatPreview,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
    UnreadCountResponse,
)
from bookswap.schemas.notification import NotificationListResponse, NotificationResponse
from bookswap.schemas.profile import ProfileBrief, ProfileResponse, ProfileUpdate, UserStats
from bookswap.schemas.user import Token, TokenPayload, UserCreate, UserLogin, UserResponse

__all__ = [
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "Token",
    "TokenPayload",
    "ProfileUpdate",
    "ProfileResponse",
    "ProfileBrief",
    "UserStats",
    "BookCondition",
    "ExchangeMethod",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookListResponse",
    "InterestStatusResponse",
    "InterestedBook",
    "MatchStatus",
    "MatchDecision",
    "MatchCreate",
    "MatchRespond",
    "MatchResponse",
    "BookSummary",
    "MatchDetail",
    "UserMatchesResponse",
    "MessageCreate",
    "MessageResponse",
    "ChatPreview",
    "UnreadCountResponse",
    "MarkReadResponse",
    "NotificationResponse",
    "NotificationListResponse",
]
