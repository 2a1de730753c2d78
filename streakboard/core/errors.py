"""
Error taxonomy for the check-in core.

Every error carries a stable ``kind`` and a human-readable ``message``.
The HTTP layer renders exactly that pair and nothing else.
"""

from fastapi import status


class StreakboardError(Exception):
    """Base class for errors surfaced to API callers."""

    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = ""):
        self.message = message or self.kind.replace("_", " ")
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.kind, "message": self.message}


class ValidationError(StreakboardError):
    """Malformed or out-of-policy input (bad date, batch too large, ...)."""

    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(StreakboardError):
    """No acting user on the request."""

    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(StreakboardError):
    """Acting user lacks the role the operation needs."""

    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotMemberError(StreakboardError):
    kind = "not_member"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, challenge_id: str, user_id: str):
        self.challenge_id = challenge_id
        self.user_id = user_id
        super().__init__("You are not a member of this challenge")


class NotFoundError(StreakboardError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class StoreError(StreakboardError):
    """Persistence failure. Retryable at the caller's discretion."""

    kind = "store_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class MetricsRecomputeError(StoreError):
    """The check-in was written but its metrics could not be recomputed."""

    kind = "metrics_stale"
    checkin_persisted = True

    def __init__(self, challenge_id: str, user_id: str):
        self.challenge_id = challenge_id
        self.user_id = user_id
        super().__init__(
            "Check-in saved, but streak metrics could not be updated. "
            "They will refresh on the next recompute."
        )
