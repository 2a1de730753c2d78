"""
PostHog analytics for check-in activity.

Events:
- check_in_recorded       (challenge_id, status)
- freeze_days_scheduled   (challenge_id, created_count)

All calls are no-ops when POSTHOG_API_KEY is unset. Delivery failures are
logged and never reach the request.
"""

import logging
from typing import Any, Dict, Optional

from posthog import Posthog

from streakboard.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[Posthog] = None


def initialize_posthog() -> Optional[Posthog]:
    global _client

    if not settings.POSTHOG_API_KEY:
        logger.warning("POSTHOG_API_KEY not set, analytics disabled")
        return None

    try:
        _client = Posthog(
            project_api_key=settings.POSTHOG_API_KEY,
            host=settings.POSTHOG_HOST,
            enable_exception_autocapture=settings.POSTHOG_ENABLE_EXCEPTION_AUTOCAPTURE,
        )
    except Exception as e:
        logger.error(f"PostHog client could not be created: {e}")
        _client = None
    return _client


def get_posthog() -> Optional[Posthog]:
    if _client is None and settings.POSTHOG_API_KEY:
        return initialize_posthog()
    return _client


def track_event(user_id: str, event_name: str, properties: Optional[Dict[str, Any]] = None):
    client = get_posthog()
    if client is None:
        return

    try:
        client.capture(distinct_id=user_id, event=event_name, properties=properties or {})
    except Exception as e:
        logger.error(f"Dropped analytics event {event_name}: {e}")


def track_check_in(user_id: str, challenge_id: str, status: str):
    track_event(
        user_id,
        "check_in_recorded",
        {"challenge_id": challenge_id, "status": status},
    )


def track_freeze_scheduled(user_id: str, challenge_id: str, created_count: int):
    track_event(
        user_id,
        "freeze_days_scheduled",
        {"challenge_id": challenge_id, "created_count": created_count},
    )


def capture_exception(
    error: Exception,
    user_id: Optional[str] = None,
    properties: Optional[Dict[str, Any]] = None,
):
    client = get_posthog()
    if client is None:
        return

    try:
        client.capture_exception(
            error, distinct_id=user_id or "server", properties=properties or {}
        )
    except Exception as e:
        logger.error(f"Dropped exception report: {e}")


def shutdown_posthog():
    """Flush queued events before the process exits."""
    global _client
    if _client is None:
        return
    try:
        _client.shutdown()
    except Exception as e:
        logger.error(f"PostHog shutdown failed: {e}")
    finally:
        _client = None
