from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from typing import List, Optional

from streakboard.core.auth import get_current_user_id
from streakboard.services.checkin_service import checkin_service
from streakboard.services.freeze_service import freeze_service

router = APIRouter(redirect_slashes=False)


class CheckInRequest(BaseModel):
    challenge_id: str
    date: str = Field(..., description="Calendar day, YYYY-MM-DD")
    status: str = Field(..., description="completed or missed")
    notes: Optional[str] = None


class CheckInResponse(BaseModel):
    success: bool = True
    message: str


class FreezeRequest(BaseModel):
    challenge_id: str
    dates: List[str] = Field(..., description="Future days to freeze, YYYY-MM-DD")


class FreezeResponse(BaseModel):
    success: bool = True
    message: str
    created_count: int


@router.post("", response_model=CheckInResponse, status_code=status.HTTP_201_CREATED)
async def submit_check_in(
    payload: CheckInRequest, user_id: str = Depends(get_current_user_id)
):
    """Record today's (or an earlier day's) check-in for a challenge"""
    await checkin_service.submit_check_in(
        challenge_id=payload.challenge_id,
        user_id=user_id,
        check_in_date=payload.date,
        status=payload.status,
        notes=payload.notes,
    )
    return CheckInResponse(message="Check-in recorded successfully")


@router.post("/freeze", response_model=FreezeResponse)
async def schedule_freeze_days(
    payload: FreezeRequest, user_id: str = Depends(get_current_user_id)
):
    """Book up to three future freeze days"""
    result = await freeze_service.schedule_freeze_days(
        challenge_id=payload.challenge_id,
        user_id=user_id,
        dates=payload.dates,
    )
    return FreezeResponse(
        message=f"Successfully created {result.created_count} freeze day(s)",
        created_count=result.created_count,
    )
