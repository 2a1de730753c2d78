"""
Celery application for background metrics work.

Redis is both broker and result backend. Tasks live in
streakboard.services.tasks; beat runs the nightly metrics sweep.
"""

from __future__ import annotations

import ssl
from typing import Dict, Optional

from celery import Celery
from celery.schedules import crontab

from streakboard.core.config import settings


def _redis_ssl_options(url: str) -> Optional[Dict[str, int]]:
    """TLS options for rediss:// URLs that do not set ssl_cert_reqs themselves."""
    if url.startswith("rediss://") and "ssl_cert_reqs" not in url:
        return {"ssl_cert_reqs": ssl.CERT_NONE}
    return None


broker_url = settings.redis_connection_url
ssl_options = _redis_ssl_options(broker_url)

celery_app = Celery(
    "streakboard",
    broker=broker_url,
    backend=broker_url,
    include=["streakboard.services.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.APP_TIMEZONE,
    enable_utc=True,
    # A challenge recompute reads every member's full history
    task_time_limit=300,
    task_soft_time_limit=270,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
    broker_use_ssl=ssl_options,
    redis_backend_use_ssl=ssl_options,
    beat_schedule={
        "recompute-all-metrics": {
            "task": "recompute_all_metrics",
            # After midnight in APP_TIMEZONE so yesterday's gaps break streaks
            "schedule": crontab(hour=0, minute=5),
        },
    },
)
