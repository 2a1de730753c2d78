from fastapi import APIRouter, Depends
from pydantic import BaseModel

from streakboard.core.auth import get_admin_user_id
from streakboard.models.streaks import CheckIn
from streakboard.services.checkin_service import checkin_service
from streakboard.services.logger import logger

router = APIRouter(redirect_slashes=False)


class BackdateRequest(BaseModel):
    user_id: str
    challenge_id: str
    date: str
    status: str


@router.post("/check-ins/backdate", response_model=CheckIn)
async def backdate_check_in(
    payload: BackdateRequest, admin_id: str = Depends(get_admin_user_id)
):
    """Overwrite a member's check-in status for a past day"""
    checkin = await checkin_service.backdate_check_in(
        challenge_id=payload.challenge_id,
        user_id=payload.user_id,
        check_in_date=payload.date,
        status=payload.status,
    )
    logger.info(
        f"Admin {admin_id} backdated check-in for user {payload.user_id}",
        {"challenge_id": payload.challenge_id, "date": payload.date},
    )
    return checkin
