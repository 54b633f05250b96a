from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.api.v1.endpoints.auth import get_current_user
from bookswap.config import settings
from bookswap.database import get_db
from bookswap.schemas.message import MarkReadResponse, UnreadCountResponse
from bookswap.schemas.notification import NotificationListResponse, NotificationResponse
from bookswap.schemas.user import UserResponse
from bookswap.services import notification_service

router = APIRouter(prefix="", tags=["notifications"])


@router.get("/", response_model=NotificationListResponse)
async def get_notifications(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> NotificationListResponse:
    notifications, total = await notification_service.list_notifications(
        db, current_user.id, unread_only, page, per_page
    )
    unread = await notification_service.get_unread_notification_count(db, current_user.id)

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread=unread,
        page=page,
        per_page=per_page,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UnreadCountResponse:
    count = await notification_service.get_unread_notification_count(db, current_user.id)
    return UnreadCountResponse(count=count)


@router.post("/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MarkReadResponse:
    updated = await notification_service.mark_all_notifications_read(db, current_user.id)
    return MarkReadResponse(updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationResponse:
    notification = await notification_service.mark_notification_read(
        db, notification_id, current_user.id
    )
    return NotificationResponse.model_validate(notification)
