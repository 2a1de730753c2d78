from fastapi import APIRouter, Depends, Query
from typing import List

from streakboard.core.auth import get_current_user_id
from streakboard.core.config import settings
from streakboard.core.errors import ForbiddenError, NotFoundError
from streakboard.models.streaks import CheckIn, Metrics
from streakboard.services.checkin_store import get_checkin_store
from streakboard.services.checkin_service import checkin_service
from streakboard.services.leaderboard_service import invalidate_leaderboards
from streakboard.services.metrics_service import metrics_service

router = APIRouter(redirect_slashes=False)


@router.get("/{challenge_id}/check-ins", response_model=List[CheckIn])
async def get_check_in_history(
    challenge_id: str,
    user_id: str = Depends(get_current_user_id),
    days: int = Query(settings.CHECKIN_HISTORY_DAYS, ge=1, le=366),
):
    """Get the current user's recent check-ins for a challenge, newest first"""
    return await checkin_service.get_check_in_history(challenge_id, user_id, days=days)


@router.post("/{challenge_id}/metrics/{member_id}/recompute", response_model=Metrics)
async def recompute_member_metrics(
    challenge_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
):
    """Rebuild a member's streak metrics from their full history (repair path)"""
    store = get_checkin_store()
    if member_id != user_id and not store.is_admin(user_id):
        raise ForbiddenError("Only admins can recompute another member's metrics")

    if not store.get_challenge(challenge_id):
        raise NotFoundError("Challenge not found")

    metrics = await metrics_service.recompute_metrics(challenge_id, member_id)
    invalidate_leaderboards(challenge_id)
    return metrics
