from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.api.v1.endpoints.auth import get_current_user
from bookswap.database import get_db
from bookswap.schemas.profile import ProfileResponse, ProfileUpdate, UserStats
from bookswap.schemas.user import UserResponse
from bookswap.services import profile_service

router = APIRouter(prefix="", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Get the current user's profile."""
    profile = await profile_service.require_profile(db, current_user.id)
    return ProfileResponse.model_validate(profile)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Update the current user's profile."""
    profile = await profile_service.require_profile(db, current_user.id)
    updated = await profile_service.update_profile(db, profile, profile_data)
    return ProfileResponse.model_validate(updated)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    profile = await profile_service.require_profile(db, user_id)
    return ProfileResponse.model_validate(profile)


@router.get("/{user_id}/stats", response_model=UserStats)
async def get_profile_stats(
    user_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserStats:
    """Books listed, successful swaps and listings of a user."""
    return await profile_service.get_user_stats(db, user_id)
