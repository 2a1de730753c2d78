"""
Metrics Tasks

Celery tasks that rebuild leaderboard metrics outside the request path:
a per-challenge repair task and the nightly sweep that fans out to it.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from streakboard.core.cache import LAST_SWEEP_KEY, get_redis_client
from streakboard.core.celery_app import celery_app
from streakboard.services.checkin_store import get_checkin_store
from streakboard.services.logger import logger
from streakboard.services.metrics_service import metrics_service


def _run(coro):
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


@celery_app.task(
    name="recompute_challenge_metrics",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def recompute_challenge_metrics_task(self, challenge_id: str) -> Dict[str, Any]:
    """
    Recompute metrics for every member of one challenge.

    Leaderboard caches live in the API processes, not here; they pick up
    the new metrics when their TTL (LEADERBOARD_CACHE_TTL_SECONDS) expires.
    """
    try:
        result = _run(metrics_service.recompute_challenge(challenge_id))
    except Exception as e:
        logger.error(f"Failed to recompute metrics for challenge {challenge_id}: {e}")
        raise self.retry(exc=e, countdown=60 * (self.request.retries + 1))

    if result["failed"]:
        logger.warning(
            f"Metrics recompute left {len(result['failed'])} member(s) stale",
            result,
        )
    return result


@celery_app.task(name="recompute_all_metrics", bind=True, max_retries=2)
def recompute_all_metrics_task(self) -> Dict[str, Any]:
    """
    Queue a recompute for every non-archived challenge.

    Runs nightly via Celery Beat. Without it a member who stops checking in
    keeps their old streak on the leaderboard until they write again.
    """
    try:
        challenge_ids = get_checkin_store().list_active_challenge_ids()
    except Exception as e:
        logger.error(f"Failed to list challenges for metrics sweep: {e}")
        raise self.retry(exc=e, countdown=300)

    for challenge_id in challenge_ids:
        recompute_challenge_metrics_task.delay(challenge_id)

    redis = get_redis_client()
    if redis:
        redis.setex(
            LAST_SWEEP_KEY,
            3600 * 48,
            datetime.now(timezone.utc).isoformat(),
        )

    logger.info(f"Queued metrics recompute for {len(challenge_ids)} challenge(s)")
    return {"queued": len(challenge_ids)}
