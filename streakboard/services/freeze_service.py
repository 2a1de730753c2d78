"""
Freeze Day Service

Books future "freeze" days that keep a streak alive without counting as a
completion. A request is validated as a whole and either every date is
booked or none is.
"""

from datetime import date, timedelta
from typing import List, Optional, Sequence, Union

from streakboard.core.analytics import track_freeze_scheduled
from streakboard.core.calendar import app_today, parse_check_in_date
from streakboard.core.config import settings
from streakboard.core.errors import NotMemberError, ValidationError
from streakboard.models.streaks import CheckInStatus, FreezeResult
from streakboard.services.checkin_store import get_checkin_store
from streakboard.services.logger import logger

FREEZE_NOTE = "Scheduled freeze day"


class FreezeService:
    def __init__(self, store=None):
        self._store = store

    @property
    def store(self):
        if self._store is None:
            self._store = get_checkin_store()
        return self._store

    def validate_dates(
        self, dates: Sequence[Union[str, date]], today: date
    ) -> List[date]:
        """Parse and check a batch of freeze dates against today's calendar."""
        max_days = settings.FREEZE_MAX_DAYS_PER_REQUEST
        horizon = settings.FREEZE_HORIZON_DAYS

        if not dates:
            raise ValidationError("At least one freeze date is required")

        # The cap applies per request; earlier requests are not counted
        if len(dates) > max_days:
            raise ValidationError(f"Cannot freeze more than {max_days} days per week")

        parsed = [parse_check_in_date(value) for value in dates]

        if len(set(parsed)) != len(parsed):
            raise ValidationError("Freeze dates must not repeat")

        last_allowed = today + timedelta(days=horizon)
        for day in parsed:
            if not (today < day <= last_allowed):
                raise ValidationError(
                    f"All dates must be 1-{horizon} days in the future"
                )

        return sorted(parsed)

    async def schedule_freeze_days(
        self,
        challenge_id: str,
        user_id: str,
        dates: Sequence[Union[str, date]],
        today: Optional[date] = None,
    ) -> FreezeResult:
        """
        Book freeze days for a challenge member.

        Args:
            challenge_id: Challenge ID
            user_id: Member booking the days
            dates: Up to FREEZE_MAX_DAYS_PER_REQUEST YYYY-MM-DD dates
            today: Overrides the current day (tests, backfills)

        Returns:
            FreezeResult with the number of rows created

        Raises:
            ValidationError: any date is invalid, not in the future, beyond
                the horizon, already taken, or the batch is too large
            NotMemberError: user is not in the challenge
        """
        today = today or app_today()
        freeze_dates = self.validate_dates(dates, today)

        if not self.store.get_membership(challenge_id, user_id):
            logger.warning(
                f"Freeze request from non-member {user_id} for challenge {challenge_id}"
            )
            raise NotMemberError(challenge_id, user_id)

        taken = self.store.get_checkins_on_dates(challenge_id, user_id, freeze_dates)
        if taken:
            taken_days = ", ".join(sorted(str(row["check_in_date"]) for row in taken))
            raise ValidationError(f"Check-ins already exist for: {taken_days}")

        rows = [
            {
                "challenge_id": challenge_id,
                "user_id": user_id,
                "check_in_date": day.isoformat(),
                "status": CheckInStatus.FREEZE.value,
                "notes": FREEZE_NOTE,
            }
            for day in freeze_dates
        ]
        self.store.insert_checkins(rows)

        logger.info(
            f"Scheduled {len(rows)} freeze day(s) for user {user_id} "
            f"in challenge {challenge_id}"
        )
        track_freeze_scheduled(user_id, challenge_id, len(rows))

        return FreezeResult(created_count=len(rows), dates=freeze_dates)


# Global instance
freeze_service = FreezeService()
