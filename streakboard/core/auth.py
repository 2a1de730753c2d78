"""
Request identity

Sessions are handled upstream; by the time a request reaches this API the
gateway has resolved the acting user and forwards it in X-User-ID.
"""

from typing import Optional

from fastapi import Depends, Header

from streakboard.core.errors import ForbiddenError, UnauthorizedError
from streakboard.services.checkin_store import get_checkin_store


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
) -> str:
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("Missing X-User-ID header")
    return x_user_id.strip()


async def get_admin_user_id(user_id: str = Depends(get_current_user_id)) -> str:
    if not get_checkin_store().is_admin(user_id):
        raise ForbiddenError("Admin access required")
    return user_id
