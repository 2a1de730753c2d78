"""
Streak Metrics Service

Derives a member's streak metrics from their check-in history and keeps the
denormalized leaderboard_metrics row in sync.

Streak rules:
- completed and freeze days continue a streak
- a missed day breaks it, and so does any day before today that has no
  record (or only a pending one); gaps are treated as missed once the day
  has passed
- only days up to today count, so scheduled future freeze days are ignored
  until they arrive
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from streakboard.core.calendar import app_today
from streakboard.core.errors import NotMemberError, StoreError
from streakboard.models.streaks import CheckInStatus, Metrics, STREAK_CONTINUING
from streakboard.services.checkin_store import get_checkin_store
from streakboard.services.logger import logger


@dataclass
class StreakSummary:
    current_streak: int
    best_streak: int
    completion_rate: float
    total_completions: int
    missed_days_count: int


def _day_statuses(history: Iterable[Dict[str, Any]], today: date) -> Dict[date, CheckInStatus]:
    days: Dict[date, CheckInStatus] = {}
    for row in history:
        raw_date = row["check_in_date"]
        day = raw_date if isinstance(raw_date, date) else date.fromisoformat(str(raw_date))
        if day > today:
            continue
        days[day] = CheckInStatus(row["status"])
    return days


def _current_streak(days: Dict[date, CheckInStatus], today: date) -> int:
    today_status = days.get(today)
    if today_status is not None and today_status != CheckInStatus.PENDING:
        cursor = today
    else:
        cursor = today - timedelta(days=1)

    streak = 0
    while days.get(cursor) in STREAK_CONTINUING:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def _best_streak(days: Dict[date, CheckInStatus]) -> int:
    best = 0
    run = 0
    previous: Optional[date] = None
    for day in sorted(days):
        if days[day] not in STREAK_CONTINUING:
            run = 0
        elif previous is not None and run and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        best = max(best, run)
        previous = day
    return best


def summarize_history(
    history: Iterable[Dict[str, Any]],
    today: date,
    previous_best: int = 0,
) -> StreakSummary:
    """Compute streak metrics for one member from raw check-in rows."""
    days = _day_statuses(history, today)

    current = _current_streak(days, today)
    best = max(_best_streak(days), current, previous_best)

    completed = sum(1 for status in days.values() if status == CheckInStatus.COMPLETED)
    missed = sum(1 for status in days.values() if status == CheckInStatus.MISSED)
    eligible = sum(1 for status in days.values() if status != CheckInStatus.PENDING)

    rate = (completed / eligible) * 100 if eligible else 0.0
    rate = round(min(max(rate, 0.0), 100.0), 2)

    return StreakSummary(
        current_streak=current,
        best_streak=best,
        completion_rate=rate,
        total_completions=completed,
        missed_days_count=missed,
    )


class MetricsService:
    """Owns the leaderboard_metrics projection."""

    def __init__(self, store=None):
        self._store = store

    @property
    def store(self):
        if self._store is None:
            self._store = get_checkin_store()
        return self._store

    async def recompute_metrics(
        self, challenge_id: str, user_id: str, today: Optional[date] = None
    ) -> Metrics:
        """
        Rebuild and persist metrics for one member.

        The history is read in full before anything is written, so a failed
        read leaves the stored row untouched. Only members have a metrics
        row; anyone else raises NotMemberError and nothing is written.
        """
        today = today or app_today()

        if not self.store.get_membership(challenge_id, user_id):
            raise NotMemberError(challenge_id, user_id)

        history = self.store.get_history(challenge_id, user_id)
        previous = self.store.get_metrics(challenge_id, user_id) or {}

        summary = summarize_history(
            history, today, previous_best=int(previous.get("best_streak") or 0)
        )
        metrics = Metrics(
            challenge_id=challenge_id,
            user_id=user_id,
            current_streak=summary.current_streak,
            best_streak=summary.best_streak,
            completion_rate=summary.completion_rate,
            total_completions=summary.total_completions,
            missed_days_count=summary.missed_days_count,
        )
        self.store.put_metrics(metrics.to_row())

        logger.info(
            f"Recomputed metrics for user {user_id} in challenge {challenge_id}: "
            f"current={metrics.current_streak} best={metrics.best_streak} "
            f"rate={metrics.completion_rate}"
        )
        return metrics

    async def recompute_challenge(
        self, challenge_id: str, today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Recompute every member of a challenge.

        Used by the nightly job so members who stopped checking in see their
        streak break without any new activity. One member failing does not
        stop the rest.
        """
        today = today or app_today()
        members = self.store.list_memberships(challenge_id)

        updated = 0
        failed: List[str] = []
        for member in members:
            user_id = member["user_id"]
            try:
                await self.recompute_metrics(challenge_id, user_id, today=today)
                updated += 1
            except StoreError as e:
                failed.append(user_id)
                logger.error(
                    f"Failed to recompute metrics for user {user_id}",
                    {"challenge_id": challenge_id, "error": e.message},
                )

        return {"challenge_id": challenge_id, "updated": updated, "failed": failed}


# Global instance
metrics_service = MetricsService()
