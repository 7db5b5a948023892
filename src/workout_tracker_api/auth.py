"""
Authentication for the HTTP surface: API keys or HS256 bearer tokens.
Provides FastAPI dependencies that resolve the caller's user id.
"""
import logging
from typing import Optional

import jwt
from fastapi import HTTPException, Header

from workout_tracker_api.config import settings

logger = logging.getLogger(__name__)

DEFAULT_API_KEY_USER = "admin"


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> str:
    """
    Authenticate via API key OR bearer JWT.
    Returns user_id string.

    Usage:
        @router.get("/session")
        async def session(user_id: str = Depends(get_current_user)):
            ...
    """
    if x_api_key:
        return validate_api_key(x_api_key)

    if authorization:
        return validate_jwt(authorization)

    raise HTTPException(
        status_code=401,
        detail="Missing authentication. Provide Authorization header or X-API-Key."
    )


def validate_api_key(api_key: str) -> str:
    """
    Validate API key and return user_id.

    API key format options:
    - Simple: "sk_test_abc123" -> returns "admin"
    - With user: "sk_test_abc123:user_12345" -> returns "user_12345"
    """
    valid_keys = settings.API_KEYS

    if not valid_keys:
        logger.warning("No API keys configured (API_KEYS env var empty)")
        raise HTTPException(status_code=401, detail="API key authentication not configured")

    key_part, _, user_part = api_key.partition(":")
    if key_part not in valid_keys:
        raise HTTPException(status_code=401, detail="Invalid API key")

    return user_part or DEFAULT_API_KEY_USER


def validate_jwt(authorization: str) -> str:
    """Validate an HS256 bearer token signed with settings.JWT_SECRET and return its subject."""
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    secret = settings.JWT_SECRET
    if not secret:
        raise HTTPException(
            status_code=500,
            detail="JWT validation not configured (missing JWT_SECRET)"
        )

    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_aud": False}
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token missing user ID")
    return user_id
