from fastapi import APIRouter

from bookswap.api.v1.endpoints import (
    auth,
    books,
    interests,
    matches,
    messages,
    notifications,
    profiles,
    realtime,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth")
router.include_router(profiles.router, prefix="/profiles")
router.include_router(books.router, prefix="/books")
router.include_router(interests.router, prefix="/interests")
router.include_router(matches.router, prefix="/matches")
router.include_router(messages.router, prefix="/messages")
router.include_router(notifications.router, prefix="/notifications")
router.include_router(realtime.router, prefix="/realtime")
