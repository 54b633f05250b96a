from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class InterestStatusResponse(BaseModel):
    """Whether the current user flagged the book"""

    book_id: UUID
    interested: bool


class InterestedBookOwner(BaseModel):
    user_id: UUID
    name: str
    profile_pic: str | None


class InterestedBook(BaseModel):
    id: UUID
    title: str
    author: str
    cover_url: str | None
    condition: str
    genre: str
    owner: InterestedBookOwner
    interested_at: datetime
