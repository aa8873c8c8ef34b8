"""
Shared router dependencies.

Authentication happens upstream; the gateway forwards the caller's id in
the X-User-Id header and every user-scoped endpoint requires it.
"""
from typing import Optional

from fastapi import Header

from app.core.errors import MissingUserError


def current_user_id(
    x_user_id: Optional[str] = Header(
        default=None,
        alias="X-User-Id",
        description="Id of the authenticated user, set by the gateway.",
        max_length=64,
    ),
) -> str:
    if x_user_id is None or not x_user_id.strip():
        raise MissingUserError()
    return x_user_id.strip()
