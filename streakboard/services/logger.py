"""
Application logger.

Call sites pass structured context as a single dict argument:

    logger.info("Recorded check-in", {"challenge_id": cid, "date": day})

Records go to stdout. When PostHog is configured, ERROR and above are also
forwarded there with that context attached.
"""

import logging
import sys
from typing import Any, Dict

from streakboard.core.analytics import capture_exception, track_event
from streakboard.core.config import settings

LOGGER_NAME = "streakboard.api"


class _PostHogErrorHandler(logging.Handler):
    """Forwards ERROR/CRITICAL records to PostHog."""

    def __init__(self) -> None:
        super().__init__(level=logging.ERROR)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            properties: Dict[str, Any] = {
                "logger_name": record.name,
                "level": record.levelname,
                "message": record.getMessage(),
                "module": record.module,
                "lineno": record.lineno,
            }
            if isinstance(record.args, dict):
                properties.update(record.args)

            exc_value = record.exc_info[1] if record.exc_info else None
            if isinstance(exc_value, Exception):
                capture_exception(exc_value, properties=properties)
            else:
                track_event("server", "server_log_error", properties)
        except Exception:
            self.handleError(record)


def _configure_logger() -> logging.Logger:
    log = logging.getLogger(LOGGER_NAME)
    if log.handlers:
        return log

    log.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    log.addHandler(stream)
    log.propagate = False

    if settings.POSTHOG_API_KEY:
        log.addHandler(_PostHogErrorHandler())
    return log


logger = _configure_logger()
