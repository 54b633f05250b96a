from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BookCondition(str, Enum):
    new = "New"
    good = "Good"
    worn = "Worn"


class ExchangeMethod(str, Enum):
    in_person = "In Person"
    mail = "Mail"
    both = "Both"


class BookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    isbn: str | None = Field(None, max_length=20)
    genre: str = Field(..., min_length=1, max_length=100)
    condition: BookCondition = BookCondition.good
    description: str | None = None
    cover_url: str | None = Field(None, max_length=500)
    location: str = Field(..., min_length=1, max_length=200)
    exchange_method: ExchangeMethod = ExchangeMethod.both
    exchange_notes: str | None = None


class BookUpdate(BaseModel):
    """Partial update. Fields left out keep their stored value."""

    title: str | None = Field(None, min_length=1, max_length=255)
    author: str | None = Field(None, min_length=1, max_length=255)
    isbn: str | None = Field(None, max_length=20)
    genre: str | None = Field(None, min_length=1, max_length=100)
    condition: BookCondition | None = None
    description: str | None = None
    cover_url: str | None = Field(None, max_length=500)
    location: str | None = Field(None, min_length=1, max_length=200)
    exchange_method: ExchangeMethod | None = None
    exchange_notes: str | None = None


class BookOwner(BaseModel):
    user_id: UUID
    name: str | None
    profile_pic: str | None


class BookResponse(BaseModel):
    id: UUID
    owner_id: UUID
    title: str
    author: str
    isbn: str | None
    genre: str
    condition: str
    description: str | None
    cover_url: str | None
    location: str
    exchange_method: str
    exchange_notes: str | None
    created_at: datetime
    updated_at: datetime

    owner: BookOwner | None = None

    model_config = ConfigDict(from_attributes=True)


class BookListResponse(BaseModel):
    books: list[BookResponse]
    total: int
    page: int
    per_page: int
