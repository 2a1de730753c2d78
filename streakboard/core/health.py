"""
Health reporting for the Streakboard API.

Three components are probed:
- record_store: the Supabase tables behind check-ins and metrics
- metrics_sweep: freshness of the nightly recompute, stamped in Redis
- response_cache: size of the in-process leaderboard cache

Only the record store can make the service critical; a stale sweep or an
unreachable Redis leaves requests working and is reported as degraded.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import redis
from pydantic import BaseModel, Field

from streakboard.core.cache import LAST_SWEEP_KEY, response_cache
from streakboard.core.config import settings
from streakboard.core.database import get_supabase_client, supabase_configured

# Nightly job plus slack for a late worker
SWEEP_MAX_AGE = timedelta(hours=26)


class HealthStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    CRITICAL = "critical"
    NOT_CONFIGURED = "not_configured"


class ComponentHealth(BaseModel):
    name: str
    status: HealthStatus
    detail: str = ""
    latency_ms: Optional[float] = Field(default=None, ge=0)
    info: Dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    status: HealthStatus
    version: str
    environment: str
    timestamp: datetime
    checks: List[ComponentHealth]


async def check_record_store() -> ComponentHealth:
    if not supabase_configured():
        return ComponentHealth(
            name="record_store",
            status=HealthStatus.NOT_CONFIGURED,
            detail="SUPABASE_URL / SUPABASE_SERVICE_KEY not set",
        )

    started = time.perf_counter()
    try:
        result = await asyncio.to_thread(
            lambda: get_supabase_client()
            .table("leaderboard_metrics")
            .select("challenge_id")
            .limit(1)
            .execute()
        )
    except Exception as exc:  # pragma: no cover - network failures
        return ComponentHealth(
            name="record_store",
            status=HealthStatus.CRITICAL,
            detail=f"Metrics table unreachable: {exc}",
            latency_ms=_since(started),
        )

    return ComponentHealth(
        name="record_store",
        status=HealthStatus.OK,
        latency_ms=_since(started),
        info={"sampled_rows": len(result.data or [])},
    )


async def check_metrics_sweep() -> ComponentHealth:
    url = settings.redis_connection_url
    if not url:
        return ComponentHealth(
            name="metrics_sweep",
            status=HealthStatus.NOT_CONFIGURED,
            detail="REDIS_URL not set",
        )

    started = time.perf_counter()
    try:
        client = redis.from_url(url, socket_connect_timeout=2, decode_responses=True)
        stamp = await asyncio.to_thread(client.get, LAST_SWEEP_KEY)
    except Exception as exc:  # pragma: no cover - network failures
        return ComponentHealth(
            name="metrics_sweep",
            status=HealthStatus.DEGRADED,
            detail=f"Redis unreachable: {exc}",
            latency_ms=_since(started),
        )

    return _sweep_health(stamp, latency_ms=_since(started))


def _sweep_health(stamp: Optional[str], latency_ms: Optional[float] = None) -> ComponentHealth:
    if not stamp:
        return ComponentHealth(
            name="metrics_sweep",
            status=HealthStatus.DEGRADED,
            detail="No metrics sweep recorded yet",
            latency_ms=latency_ms,
        )

    last_run = datetime.fromisoformat(stamp)
    age = datetime.now(timezone.utc) - last_run
    stale = age > SWEEP_MAX_AGE
    return ComponentHealth(
        name="metrics_sweep",
        status=HealthStatus.DEGRADED if stale else HealthStatus.OK,
        detail="Metrics sweep is overdue" if stale else "",
        latency_ms=latency_ms,
        info={"last_run": stamp, "age_hours": round(age.total_seconds() / 3600, 1)},
    )


async def check_response_cache() -> ComponentHealth:
    return ComponentHealth(
        name="response_cache",
        status=HealthStatus.OK,
        info={"entries": response_cache.stats()["size"]},
    )


HEALTH_CHECKS: List[Callable[[], Awaitable[ComponentHealth]]] = [
    check_record_store,
    check_metrics_sweep,
    check_response_cache,
]

_SEVERITY = [HealthStatus.CRITICAL, HealthStatus.DEGRADED, HealthStatus.OK]


def overall_status(checks: List[ComponentHealth]) -> HealthStatus:
    statuses = {check.status for check in checks}
    if statuses <= {HealthStatus.NOT_CONFIGURED}:
        return HealthStatus.NOT_CONFIGURED
    for level in _SEVERITY:
        if level in statuses:
            return level
    return HealthStatus.OK


async def build_health_report(api_version: str) -> HealthReport:
    checks = list(await asyncio.gather(*(check() for check in HEALTH_CHECKS)))
    return HealthReport(
        status=overall_status(checks),
        version=api_version,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


def _since(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
