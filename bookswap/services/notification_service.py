import logging
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.core.exceptions import NotAuthorizedError, NotFoundError
from bookswap.models.notification import Notification

logger = logging.getLogger(__name__)


async def create_notification(
    db: AsyncSession,
    user_id: UUID,
    type: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    actor_id: UUID | None = None,
) -> Notification | None:
    """
    Store a notification for `user_id`.
    Nothing is created when the recipient is the actor who caused the event.
    """
    if actor_id is not None and actor_id == user_id:
        return None

    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data or {},
        read=False,
    )
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    return notification


async def notify_best_effort(
    db: AsyncSession,
    user_id: UUID,
    type: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    actor_id: UUID | None = None,
) -> Notification | None:
    """Like create_notification, but a store failure is logged instead of raised."""
    try:
        return await create_notification(
            db,
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data,
            actor_id=actor_id,
        )
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Error creating {type} notification for user {user_id}")
        return None


async def list_notifications(
    db: AsyncSession,
    user_id: UUID,
    unread_only: bool = False,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Notification], int]:
    """Notifications of a user, newest first."""
    query = select(Notification).where(Notification.user_id == user_id)

    if unread_only:
        query = query.where(Notification.read == False)

    # Get total count
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Apply pagination and ordering
    offset = (page - 1) * per_page
    query = query.order_by(Notification.created_at.desc()).offset(offset).limit(per_page)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_unread_notification_count(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            and_(
                Notification.user_id == user_id,
                Notification.read == False,
            )
        )
    )
    return result.scalar() or 0


async def mark_notification_read(
    db: AsyncSession,
    notification_id: UUID,
    user_id: UUID,
) -> Notification:
    result = await db.execute(
        select(Notification).where(Notification.id == notification_id)
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found", resource="notification")
    if notification.user_id != user_id:
        raise NotAuthorizedError("Not your notification")

    if not notification.read:
        notification.read = True
        await db.commit()
        await db.refresh(notification)
    return notification


async def mark_all_notifications_read(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(Notification).where(
            and_(
                Notification.user_id == user_id,
                Notification.read == False,
            )
        )
    )
    notifications = list(result.scalars().all())

    for notification in notifications:
        notification.read = True

    await db.commit()
    return len(notifications)
