from fastapi import APIRouter, Query
from typing import List

from streakboard.models.streaks import LeaderboardEntry
from streakboard.services.leaderboard_service import leaderboard_service

router = APIRouter(redirect_slashes=False)


@router.get("", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    challenge_id: str = Query(...),
    sort_by: str = Query(
        "current-streak",
        description="current-streak, best-streak, completion-rate or missed-days",
    ),
):
    """Get the top members of a challenge"""
    return await leaderboard_service.get_leaderboard(challenge_id, sort_by)
