from bookswap.models.book import Book
from bookswap.models.interest import InterestMark
from bookswap.models.match import Match
from bookswap.models.message import Message
from bookswap.models.notification import Notification
from bookswap.models.profile import Profile
from bookswap.models.user import User

__all__ = [
    "User",
    "Profile",
    "Book",
    "Match",
    "InterestMark",
    "Message",
    "Notification",
]
