"""
Identity dependencies for FastAPI routes.

The front end authenticates users and forwards their identity in the
X-User-Id, X-User-Name and X-User-Role headers.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class CurrentUser:
    id: str
    name: Optional[str] = None
    role: Optional[str] = None


async def get_current_user_id(
    x_user_id: str = Header(..., alias="X-User-Id"),
) -> str:
    """Extract the authenticated user ID from the request header. Raises 401 if empty."""
    if not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header.",
        )
    return x_user_id.strip()


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> CurrentUser:
    return CurrentUser(
        id=user_id,
        name=x_user_name or None,
        role=x_user_role.upper() if x_user_role else None,
    )

