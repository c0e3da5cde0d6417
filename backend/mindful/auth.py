"""Caller identity for the billing API.

Authentication is terminated upstream; the gateway in front of this service
forwards the authenticated user's ID in the ``X-User-ID`` header.
"""
from typing import Annotated

from fastapi import Header, HTTPException, status


def get_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str | None:
    """Return the caller's user ID, or None for anonymous requests."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def require_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Return the caller's user ID.

    Raises:
        HTTPException: 400 if the X-User-ID header is missing.
    """
    user_id = get_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required header: X-User-ID",
        )
    return user_id
