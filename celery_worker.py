"""
Celery Worker Entry Point

Run this file to start Celery workers:
    celery -A celery_worker worker --loglevel=info

To run Celery Beat (for the nightly metrics sweep):
    celery -A celery_worker beat --loglevel=info

Or run both worker and beat together:
    celery -A celery_worker worker --beat --loglevel=info
"""

from streakboard.core.celery_app import celery_app
import streakboard.services.tasks  # noqa: F401  registers tasks

__all__ = ["celery_app"]
