"""
Check-in Service

Single entry point for writing daily check-ins. Validates the request,
upserts the day's row, then recomputes the member's metrics before
returning so the next leaderboard read reflects the new streak.
"""

from datetime import date, timedelta
from typing import List, Optional, Set, Union

from streakboard.core.analytics import track_check_in
from streakboard.core.calendar import app_today, parse_check_in_date
from streakboard.core.config import settings
from streakboard.core.errors import (
    MetricsRecomputeError,
    NotFoundError,
    NotMemberError,
    StoreError,
    ValidationError,
)
from streakboard.models.streaks import (
    BACKDATE_STATUSES,
    SUBMITTABLE_STATUSES,
    CheckIn,
    CheckInStatus,
)
from streakboard.services.checkin_store import get_checkin_store
from streakboard.services.leaderboard_service import invalidate_leaderboards
from streakboard.services.logger import logger
from streakboard.services.metrics_service import MetricsService, metrics_service


def _parse_status(value: Union[str, CheckInStatus], allowed: Set[CheckInStatus]) -> CheckInStatus:
    try:
        status = CheckInStatus(value)
    except ValueError:
        status = None
    if status not in allowed:
        choices = ", ".join(sorted(s.value for s in allowed))
        raise ValidationError(f"Invalid status. Must be one of: {choices}")
    return status


class CheckInService:
    def __init__(self, store=None, metrics: Optional[MetricsService] = None):
        self._store = store
        self.metrics = metrics or metrics_service

    @property
    def store(self):
        if self._store is None:
            self._store = get_checkin_store()
        return self._store

    async def submit_check_in(
        self,
        challenge_id: str,
        user_id: str,
        check_in_date: Union[str, date],
        status: Union[str, CheckInStatus],
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> None:
        """
        Record a member's check-in for one day.

        Re-submitting for the same day overwrites the status (last write
        wins); it never creates a second row.

        Raises:
            ValidationError: bad status, bad date, or a date after today
            NotFoundError: challenge does not exist
            NotMemberError: user has not joined the challenge
            StoreError: the write failed
            MetricsRecomputeError: the write succeeded but metrics are stale
        """
        today = today or app_today()
        checkin_status = _parse_status(status, SUBMITTABLE_STATUSES)
        day = parse_check_in_date(check_in_date)
        if day > today:
            raise ValidationError("Cannot check in for a future date")

        await self._write_and_recompute(
            challenge_id, user_id, day, checkin_status, notes, today,
            provision_profile=settings.AUTO_PROVISION_USER_PROFILES,
        )
        track_check_in(user_id, challenge_id, checkin_status.value)

    async def backdate_check_in(
        self,
        challenge_id: str,
        user_id: str,
        check_in_date: Union[str, date],
        status: Union[str, CheckInStatus],
        today: Optional[date] = None,
    ) -> CheckIn:
        """
        Admin override: set any member's status for a past day (or today).

        Callers are responsible for checking the acting user is an admin.
        """
        today = today or app_today()
        checkin_status = _parse_status(status, BACKDATE_STATUSES)
        day = parse_check_in_date(check_in_date)
        if day > today:
            raise ValidationError("Backdated check-ins cannot be in the future")

        await self._write_and_recompute(
            challenge_id, user_id, day, checkin_status, None, today,
            provision_profile=False,
        )
        logger.info(
            f"Backdated check-in for user {user_id} in challenge {challenge_id}",
            {"date": day.isoformat(), "status": checkin_status.value},
        )
        return CheckIn(
            challenge_id=challenge_id,
            user_id=user_id,
            check_in_date=day,
            status=checkin_status,
        )

    async def get_check_in_history(
        self,
        challenge_id: str,
        user_id: str,
        days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> List[CheckIn]:
        """A member's check-ins over the last ``days`` days, newest first."""
        today = today or app_today()
        days = days or settings.CHECKIN_HISTORY_DAYS
        start = today - timedelta(days=days)

        rows = self.store.get_history(challenge_id, user_id, start_date=start, end_date=today)
        return [CheckIn(**row) for row in reversed(rows)]

    async def _write_and_recompute(
        self,
        challenge_id: str,
        user_id: str,
        day: date,
        status: CheckInStatus,
        notes: Optional[str],
        today: date,
        provision_profile: bool,
    ) -> None:
        if not self.store.get_challenge(challenge_id):
            raise NotFoundError("Challenge not found")

        if provision_profile and self.store.ensure_user_profile(user_id):
            logger.info(f"Created missing profile for user {user_id}")

        if not self.store.get_membership(challenge_id, user_id):
            logger.info(f"User {user_id} is not a member of challenge {challenge_id}")
            raise NotMemberError(challenge_id, user_id)

        row = {
            "challenge_id": challenge_id,
            "user_id": user_id,
            "check_in_date": day.isoformat(),
            "status": status.value,
        }
        if notes is not None:
            row["notes"] = notes
        self.store.upsert_checkin(row)

        logger.info(
            f"Recorded {status.value} check-in for user {user_id}",
            {"challenge_id": challenge_id, "date": day.isoformat()},
        )

        try:
            await self.metrics.recompute_metrics(challenge_id, user_id, today=today)
        except StoreError as e:
            logger.error(
                f"Check-in saved but metrics recompute failed for user {user_id}",
                {"challenge_id": challenge_id, "error": e.message},
            )
            raise MetricsRecomputeError(challenge_id, user_id) from e
        finally:
            invalidate_leaderboards(challenge_id)


# Global instance
checkin_service = CheckInService()
