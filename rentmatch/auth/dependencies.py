from __future__ import annotations

from fastapi import Header, HTTPException

USER_HEADER = "X-User-Id"


def get_current_user(x_user_id: str | None = Header(default=None)) -> str | None:
    """Requester id forwarded by the upstream auth layer, or ``None``."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


def require_user(x_user_id: str | None = Header(default=None)) -> str:
    """Raise 401 if the request carries no requester id."""
    user_id = get_current_user(x_user_id)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id
