from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.core.exceptions import NotFoundError
from bookswap.models.book import Book
from bookswap.models.match import Match
from bookswap.models.profile import Profile
from bookswap.schemas.book import BookResponse
from bookswap.schemas.profile import ProfileUpdate, UserStats


async def get_profile_by_user_id(db: AsyncSession, user_id: UUID) -> Profile | None:
    """Get profile by user ID."""
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_profiles_by_user_ids(
    db: AsyncSession,
    user_ids: set[UUID],
) -> dict[UUID, Profile]:
    """Batch lookup keyed by user ID. Unknown IDs are absent from the result."""
    if not user_ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.user_id.in_(user_ids)))
    return {profile.user_id: profile for profile in result.scalars().all()}


async def require_profile(db: AsyncSession, user_id: UUID) -> Profile:
    profile = await get_profile_by_user_id(db, user_id)
    if profile is None:
        raise NotFoundError("Profile not found", resource="profile")
    return profile


async def update_profile(
    db: AsyncSession, profile: Profile, data: ProfileUpdate
) -> Profile:
    """Update profile fields. Only update fields that are provided."""
    update_data = data.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        setattr(profile, field, value)

    await db.commit()
    await db.refresh(profile)
    return profile


async def get_user_stats(db: AsyncSession, user_id: UUID) -> UserStats:
    """
    Listing and exchange statistics shown on the profile page.
    Successful swaps are accepted matches the user requested or received.
    """
    profile = await require_profile(db, user_id)

    books_result = await db.execute(
        select(Book).where(Book.owner_id == user_id).order_by(Book.created_at.desc())
    )
    books = list(books_result.scalars().all())
    book_ids = [book.id for book in books]

    involvement = Match.requester_id == user_id
    if book_ids:
        involvement = or_(involvement, Match.book_requested_id.in_(book_ids))

    swaps_result = await db.execute(
        select(func.count(Match.id)).where(
            Match.status == "accepted",
            involvement,
        )
    )

    return UserStats(
        books_listed=len(books),
        successful_swaps=swaps_result.scalar() or 0,
        member_since=profile.created_at,
        books=[BookResponse.model_validate(book) for book in books],
    )
