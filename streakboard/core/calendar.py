"""
Calendar helpers shared by the check-in services.

Check-in dates are plain calendar days ("YYYY-MM-DD"); "today" is taken in
the configured APP_TIMEZONE so every request agrees on the day boundary.
"""

import re
from datetime import date, datetime
from typing import Union

import pytz

from streakboard.core.config import settings
from streakboard.core.errors import ValidationError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def app_today() -> date:
    """Today's date in APP_TIMEZONE. Falls back to UTC on an unknown zone."""
    try:
        tz = pytz.timezone(settings.APP_TIMEZONE or "UTC")
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC
    return datetime.now(tz).date()


def parse_check_in_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD string into a date, raising ValidationError."""
    if isinstance(value, datetime):
        raise ValidationError("Date must be in YYYY-MM-DD format")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValidationError("Date must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{value} is not a valid calendar date")
