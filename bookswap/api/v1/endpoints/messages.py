from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.api.v1.endpoints.auth import get_current_user
from bookswap.database import get_db
from bookswap.schemas.message import (
    ChatPreview,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
    UnreadCountResponse,
)
from bookswap.schemas.user import UserResponse
from bookswap.services import message_service

router = APIRouter(prefix="", tags=["messages"])


@router.post("/", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    data: MessageCreate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    message = await message_service.send_message(
        db,
        sender_id=current_user.id,
        receiver_id=data.receiver_id,
        content=data.content,
    )
    return MessageResponse.model_validate(message)


# NOTE: These specific routes MUST be defined before /{user_id}
@router.get("/chats", response_model=list[ChatPreview])
async def get_chats(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[ChatPreview]:
    """All conversations with their last message and unread count."""
    return await message_service.get_chat_previews(db, current_user.id)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UnreadCountResponse:
    count = await message_service.get_unread_count(db, current_user.id)
    return UnreadCountResponse(count=count)


@router.get("/{user_id}", response_model=list[MessageResponse])
async def get_conversation(
    user_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[MessageResponse]:
    """Conversation with another user. Opening it marks incoming messages as read."""
    messages = await message_service.fetch_conversation(db, current_user.id, user_id)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post("/{user_id}/read", response_model=MarkReadResponse)
async def mark_conversation_read(
    user_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MarkReadResponse:
    updated = await message_service.mark_messages_as_read(db, current_user.id, user_id)
    return MarkReadResponse(updated=updated)
