from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CheckInStatus(str, Enum):
    COMPLETED = "completed"
    MISSED = "missed"
    FREEZE = "freeze"
    PENDING = "pending"


# Statuses a member may submit for themselves; freeze goes through scheduling
SUBMITTABLE_STATUSES = {CheckInStatus.COMPLETED, CheckInStatus.MISSED}

# Statuses an admin may write through the backdate path
BACKDATE_STATUSES = {
    CheckInStatus.COMPLETED,
    CheckInStatus.MISSED,
    CheckInStatus.FREEZE,
}

STREAK_CONTINUING = {CheckInStatus.COMPLETED, CheckInStatus.FREEZE}


class SortBy(str, Enum):
    CURRENT_STREAK = "current-streak"
    BEST_STREAK = "best-streak"
    COMPLETION_RATE = "completion-rate"
    MISSED_DAYS = "missed-days"

    @property
    def metric_field(self) -> str:
        return {
            SortBy.CURRENT_STREAK: "current_streak",
            SortBy.BEST_STREAK: "best_streak",
            SortBy.COMPLETION_RATE: "completion_rate",
            SortBy.MISSED_DAYS: "missed_days_count",
        }[self]


class CheckIn(BaseModel):
    id: Optional[str] = None
    challenge_id: str
    user_id: str
    check_in_date: date
    status: CheckInStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class Metrics(BaseModel):
    challenge_id: str
    user_id: str
    current_streak: int = Field(0, ge=0)
    best_streak: int = Field(0, ge=0)
    completion_rate: float = Field(0.0, ge=0, le=100)
    total_completions: int = Field(0, ge=0)
    missed_days_count: int = Field(0, ge=0)

    def to_row(self) -> dict:
        return self.model_dump(mode="json")


class AchievementSummary(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    criteria: Optional[str] = None
    icon: Optional[str] = None


class LeaderboardEntry(BaseModel):
    rank: int = Field(..., ge=1)
    user_id: str
    username: str = "Unknown"
    avatar_url: Optional[str] = None
    current_streak: int = 0
    best_streak: int = 0
    completion_rate: float = 0.0
    total_completions: int = 0
    missed_days: int = 0
    achievements: List[AchievementSummary] = Field(default_factory=list)


class FreezeResult(BaseModel):
    created_count: int
    dates: List[date] = Field(default_factory=list)
