from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from bookswap.schemas.book import BookResponse


class ProfileUpdate(BaseModel):
    """Only provided fields are changed"""

    name: str | None = Field(None, max_length=100)
    bio: str | None = Field(None, max_length=1000)
    location: str | None = Field(None, max_length=200)
    profile_pic: str | None = Field(None, max_length=500)


class ProfileResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str | None
    bio: str | None
    location: str | None
    profile_pic: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileBrief(BaseModel):
    """Public subset shown next to books, matches and chats"""

    user_id: UUID
    name: str | None
    profile_pic: str | None

    model_config = ConfigDict(from_attributes=True)


class UserStats(BaseModel):
    books_listed: int
    successful_swaps: int
    member_since: datetime
    books: list[BookResponse]
