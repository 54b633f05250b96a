"""Message service for chat functionality."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.core.exceptions import NotFoundError, RequiredFieldError, ValidationError
from bookswap.models.message import Message
from bookswap.schemas.message import ChatPreview
from bookswap.services import profile_service, user_service

logger = logging.getLogger(__name__)


async def send_message(
    db: AsyncSession,
    sender_id: UUID,
    receiver_id: UUID,
    content: str,
) -> Message:
    """Create a new message."""
    content = content.strip()
    if not content:
        raise RequiredFieldError("Message content cannot be empty", field="content")

    if receiver_id == sender_id:
        raise ValidationError("You cannot send a message to yourself", field="receiver_id")

    if await user_service.get_user_by_id(db, receiver_id) is None:
        raise NotFoundError("Recipient not found", resource="user")

    message = Message(
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        read=False,
    )
    db.add(message)
    await db.commit()
    await db.refresh(message)
    logger.debug(f"Message {message.id} sent from {sender_id} to {receiver_id}")
    return message


async def fetch_conversation(
    db: AsyncSession,
    user_id: UUID,
    other_user_id: UUID,
) -> list[Message]:
    """
    Messages between two users in chronological order.
    Unread messages addressed to `user_id` are marked as read.
    """
    result = await db.execute(
        select(Message)
        .where(
            or_(
                and_(Message.sender_id == user_id, Message.receiver_id == other_user_id),
                and_(Message.sender_id == other_user_id, Message.receiver_id == user_id),
            )
        )
        .order_by(Message.created_at.asc())
    )
    messages = list(result.scalars().all())

    if any(m.receiver_id == user_id and not m.read for m in messages):
        await mark_messages_as_read(db, user_id, other_user_id)

    return messages


async def mark_messages_as_read(
    db: AsyncSession,
    reader_id: UUID,
    sender_id: UUID,
) -> int:
    """Mark all unread messages from `sender_id` to `reader_id` as read."""
    result = await db.execute(
        select(Message).where(
            and_(
                Message.receiver_id == reader_id,
                Message.sender_id == sender_id,
                Message.read == False,
            )
        )
    )
    messages = list(result.scalars().all())

    for message in messages:
        message.read = True

    await db.commit()
    return len(messages)


async def get_unread_count(
    db: AsyncSession,
    user_id: UUID,
) -> int:
    """Get total unread messages count for a user."""
    result = await db.execute(
        select(func.count(Message.id)).where(
            and_(
                Message.receiver_id == user_id,
                Message.read == False,
            )
        )
    )
    return result.scalar() or 0


async def get_chat_previews(
    db: AsyncSession,
    user_id: UUID,
) -> list[ChatPreview]:
    """One preview per conversation partner, most recent conversation first."""
    result = await db.execute(
        select(Message)
        .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
        .order_by(Message.created_at.desc())
    )

    last_messages: dict[UUID, Message] = {}
    unread_counts: dict[UUID, int] = {}
    for message in result.scalars().all():
        partner_id = message.receiver_id if message.sender_id == user_id else message.sender_id
        # Rows come newest first, so the first one seen per partner is the latest
        last_messages.setdefault(partner_id, message)
        unread_counts.setdefault(partner_id, 0)
        if message.receiver_id == user_id and not message.read:
            unread_counts[partner_id] += 1

    profiles = await profile_service.get_profiles_by_user_ids(db, set(last_messages))

    previews = []
    for partner_id, last_message in last_messages.items():
        profile = profiles.get(partner_id)
        previews.append(ChatPreview(
            partner_id=partner_id,
            partner_name=profile.name if profile and profile.name else "Unknown User",
            partner_avatar=profile.profile_pic if profile else None,
            last_message=last_message.content,
            last_message_at=last_message.created_at,
            unread_count=unread_counts[partner_id],
        ))

    # Sort by last message time (most recent first)
    previews.sort(key=lambda p: p.last_message_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)

    return previews
