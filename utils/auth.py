"""
Authentication utilities
"""
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends, Header, HTTPException

from config.settings import (
    ADMIN_USER_IDS,
    get_supabase_client,
    reinitialize_supabase,
)
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: Optional[str] = None


def _bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


def get_user_from_token(token: str) -> CurrentUser:
    """
    Validate a Supabase access token and return the signed-in user

    Raises:
        HTTPException: If the token is invalid or the auth service is unreachable
    """
    attempts = 3
    delay = 0.2

    for attempt in range(attempts):
        try:
            res = get_supabase_client().auth.get_user(token)
            user = getattr(res, "user", None)
            if not user:
                raise HTTPException(status_code=401, detail="Invalid or expired session")
            return CurrentUser(id=str(user.id), email=getattr(user, "email", None))
        except HTTPException:
            raise
        except (httpx.TransportError, ConnectionError) as exc:
            if attempt < attempts - 1:
                logger.warning(f"Session lookup failed (attempt {attempt + 1}/{attempts}): {type(exc).__name__}")
                time.sleep(delay * (attempt + 1))
                if attempt >= 1:
                    reinitialize_supabase()
                continue
            logger.error(f"Session lookup failed after {attempts} attempts: {exc}")
            raise HTTPException(status_code=503, detail="Authentication service unavailable")
        except Exception as exc:
            # gotrue raises AuthApiError for bad/expired tokens
            logger.info(f"Rejected session token: {exc}")
            raise HTTPException(status_code=401, detail="Invalid or expired session")
    raise HTTPException(status_code=503, detail="Authentication service unavailable")


def get_current_user(authorization: str | None = Header(default=None)) -> CurrentUser:
    """FastAPI dependency resolving the Authorization header to a user."""
    return get_user_from_token(_bearer_token(authorization))


def is_admin_user(user_id: str) -> bool:
    """
    Determine whether the given user has administrator privileges.
    Admins come from ADMIN_USER_IDS or the is_admin RPC (admin_users table).
    """
    if user_id in ADMIN_USER_IDS:
        return True
    try:
        res = get_supabase_client().rpc("is_admin", {"_user_id": user_id}).execute()
    except Exception as exc:
        logger.error(f"Failed to determine admin status for {user_id[:8]}...: {exc}")
        return False
    return bool(res.data)


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """FastAPI dependency allowing only administrators through."""
    if not is_admin_user(user.id):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
