"""Data access for (user, repository, role) memberships."""

from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from badge_core.logging import get_logger
from badge_core.models import Repository, User, UserRepositoryMembership

from .base import BaseRepository

logger = get_logger("repository.membership")


class MembershipRepository(BaseRepository[UserRepositoryMembership]):
    """Repository for UserRepositoryMembership rows. One row per (user, repository)."""

    model = UserRepositoryMembership

    def get(self, user_id: int, repository_id: int) -> UserRepositoryMembership | None:
        return (
            self.session.query(UserRepositoryMembership)
            .filter(
                UserRepositoryMembership.user_id == user_id,
                UserRepositoryMembership.repository_id == repository_id,
            )
            .first()
        )

    def get_active(self, user_id: int, repository_id: int) -> UserRepositoryMembership | None:
        membership = self.get(user_id, repository_id)
        if membership and membership.active:
            return membership
        return None

    def upsert(self, user: User, repository: Repository, role: str) -> UserRepositoryMembership:
        """
        Create or refresh the membership for (user, repository).

        A concurrent insert of the same pair loses on the unique constraint;
        the loser re-reads the winner's row and updates it instead.
        """
        membership = self.get(user.id, repository.id)

        if membership is None:
            try:
                with self.session.begin_nested():
                    membership = UserRepositoryMembership(user_id=user.id, repository_id=repository.id)
                    membership.apply_role(role)
                    self.session.add(membership)
                logger.info(
                    "membership_created",
                    user_id=user.id,
                    repository_id=repository.id,
                    role=role,
                )
                return membership
            except IntegrityError:
                logger.info("membership_conflict", user_id=user.id, repository_id=repository.id)
                membership = self.get(user.id, repository.id)
                if membership is None:
                    raise

        membership.apply_role(role)
        membership.active = True
        membership.imported_at = datetime.now(timezone.utc)
        self.session.flush()
        return membership

    def list_active_user_ids(self, repository_id: int) -> list[int]:
        rows = (
            self.session.query(UserRepositoryMembership.user_id)
            .filter(
                UserRepositoryMembership.repository_id == repository_id,
                UserRepositoryMembership.active.is_(True),
            )
            .all()
        )
        return [row[0] for row in rows]
