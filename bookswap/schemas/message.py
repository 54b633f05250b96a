"""Message schemas for API requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    """Send a direct message."""
    receiver_id: UUID
    content: str = Field(..., max_length=2000)


class MessageResponse(BaseModel):
    """Message response."""
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatPreview(BaseModel):
    """Preview of a conversation for the chat list."""
    partner_id: UUID
    partner_name: str
    partner_avatar: str | None
    last_message: str | None
    last_message_at: datetime | None
    unread_count: int


class UnreadCountResponse(BaseModel):
    """Unread messages count."""
    count: int


class MarkReadResponse(BaseModel):
    updated: int
