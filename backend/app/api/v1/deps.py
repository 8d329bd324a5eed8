"""
API Dependencies

Database session and acting-user dependencies shared by the v1 routers.

Authentication happens upstream; the gateway forwards the authenticated
user's id in the X-User-Id header.
"""
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from app.db.session import get_db  # noqa: F401  (re-exported for routers)


def get_current_user_id(
    x_user_id: Annotated[Optional[int], Header(description="Acting user id, set by the gateway")] = None,
) -> Optional[int]:
    """Acting user id, or None when the request carries none."""
    return x_user_id


def require_current_user_id(
    user_id: Annotated[Optional[int], Depends(get_current_user_id)],
) -> int:
    """
    Dependency for endpoints that must record who acted.

    Raises:
        HTTPException 401 if no X-User-Id header was forwarded
    """
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return user_id
