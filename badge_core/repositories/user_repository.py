"""User lookups by GitHub identity, and stored GitHub credentials."""

from datetime import datetime, timezone

from sqlalchemy import func

from badge_core.logging import get_logger
from badge_core.models import User
from badge_core.security.encryption import get_encryption_service

from .base import BaseRepository

logger = get_logger("repository.user")


class UserRepository(BaseRepository[User]):
    model = User

    def get_by_github_username(self, username: str | None) -> User | None:
        """GitHub logins are case-insensitive; so is this lookup."""
        if not username:
            return None
        return (
            self.session.query(User)
            .filter(func.lower(User.github_username) == username.lower())
            .first()
        )

    def resolve_first(self, *usernames: str | None) -> User | None:
        """First local user matching any of the logins, tried in order."""
        for username in usernames:
            user = self.get_by_github_username(username)
            if user is not None:
                return user
        return None

    def get_decrypted_token(self, user: User) -> str | None:
        """The user's GitHub token in plaintext, or None when none is stored."""
        if not user.github_access_token:
            return None
        return get_encryption_service().decrypt_if_encrypted(user.github_access_token)

    def store_access_token(self, user: User, access_token: str) -> None:
        """Save a GitHub token, encrypted when TOKEN_ENCRYPTION_KEY is set."""
        stored, encrypted = get_encryption_service().encrypt_if_available(access_token)
        if not encrypted:
            logger.warning("token_stored_unencrypted", github_username=user.github_username)
        user.github_access_token = stored
        user.updated_at = datetime.now(timezone.utc)
        self.session.flush()
