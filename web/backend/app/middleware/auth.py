"""Auth middleware -- FastAPI dependencies for the coordinator and the current user.

Requests authenticate with an ``X-API-Key: <raw_key>`` header. Keys are
issued with ``barterguard users key <username>``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from barterguard.auth.models import User
from barterguard.moderation.coordinator import ModerationCoordinator
from barterguard.service import build_coordinator

# Shared coordinator instance; its trust counters live as long as the process
_coordinator: Optional[ModerationCoordinator] = None


def get_coordinator() -> ModerationCoordinator:
    """Return the singleton ModerationCoordinator."""
    global _coordinator
    if _coordinator is None:
        _coordinator = build_coordinator()
    return _coordinator


async def get_current_user(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    coordinator: ModerationCoordinator = Depends(get_coordinator),
) -> User:
    """FastAPI dependency that resolves the caller from their API key.

    Raises ``401 Unauthorized`` if the key is missing, unknown or expired.
    """
    if x_api_key and coordinator.users is not None:
        user = coordinator.users.validate_api_key(x_api_key)
        if user is not None:
            return user

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "APIKey"},
    )
