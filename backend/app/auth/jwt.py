"""
JWT helpers for API authentication.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt

from ..config import get_settings


def create_access_token(data: Dict[str, Any], expires_minutes: int | None = None) -> str:
    """
    Create a signed access token.

    Args:
        data: Claims to include, e.g. {"sub": str(user.id)}.
        expires_minutes: Override for ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    claims = {**data, "exp": expire, "jti": uuid.uuid4().hex}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        ValueError: If the signature or expiry check fails.
    """
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
