from fastapi import APIRouter
from streakboard.api.v1.endpoints import (
    admin,
    challenges,
    checkins,
    leaderboard,
)

# Create main API router
api_router = APIRouter(
    redirect_slashes=False
)  # Disable redirects to preserve request headers

# Include all endpoint routers
api_router.include_router(checkins.router, prefix="/check-ins", tags=["Check-ins"])
api_router.include_router(challenges.router, prefix="/challenges", tags=["Challenges"])
api_router.include_router(
    leaderboard.router, prefix="/leaderboard", tags=["Leaderboard"]
)
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
