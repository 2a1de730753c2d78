"""
Celery Tasks Package

Re-exports all tasks for Celery autodiscovery.

- metrics_tasks: leaderboard metrics repair and the nightly sweep
"""

from streakboard.services.tasks.metrics_tasks import (
    recompute_challenge_metrics_task,
    recompute_all_metrics_task,
)

__all__ = [
    "recompute_challenge_metrics_task",
    "recompute_all_metrics_task",
]
