"""
Authentication dependencies for FastAPI routes.

Accepts a Bearer token in the Authorization header or the `access_token`
cookie. The webhook receiver does not use these; it authenticates by
signature.
"""

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from badge_core.models import User
from badge_core.repositories import UserRepository

from ..database import get_db
from .jwt import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_from_request(
    token_header: str | None = Depends(oauth2_scheme),
    access_token_cookie: str | None = Cookie(None, alias="access_token"),
) -> str:
    token = token_header or access_token_cookie
    if not token:
        raise _unauthorized("Not authenticated")
    return token


def get_current_user(
    token: str = Depends(get_token_from_request),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the user named by the token's `sub` claim, or raise 401."""
    try:
        claims = decode_access_token(token)
    except ValueError:
        raise _unauthorized("Invalid authentication credentials") from None

    subject = str(claims.get("sub") or "")
    if not subject.isdigit():
        raise _unauthorized("Invalid authentication credentials")

    user = UserRepository(db).get_by_id(int(subject))
    if user is None:
        raise _unauthorized("User not found")
    return user
