"""Badge catalog: default seeding and active listing per repository."""

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from badge_core.constants import DEFAULT_BADGES
from badge_core.exceptions import NotFoundError
from badge_core.logging import get_logger
from badge_core.models import Badge, Repository, User
from badge_core.repositories import AwardRepository, BadgeRepository

logger = get_logger("services.badge_catalog")


class BadgeCatalog:
    """Badge definitions scoped to a repository."""

    def __init__(self, session: Session):
        self.session = session
        self.badges = BadgeRepository(session)

    def seed_defaults(self, repository: Repository, creator: User | None) -> list[Badge]:
        """
        Create the default badge set for a repository and link it.

        Returns the created badges, or an empty list when defaults already
        exist (including when a concurrent seeder won the unique constraint).
        """
        if self.badges.has_defaults(repository.id):
            return []

        try:
            with self.session.begin_nested():
                created = [
                    Badge(
                        repository_id=repository.id,
                        is_default=True,
                        active=True,
                        created_by_id=creator.id if creator else None,
                        **definition,
                    )
                    for definition in DEFAULT_BADGES
                ]
                self.session.add_all(created)
        except IntegrityError:
            logger.info("default_badges_already_seeded", repository_id=repository.id)
            return []

        for badge in created:
            if badge not in repository.badges:
                repository.badges.append(badge)

        logger.info("default_badges_seeded", repository_id=repository.id, count=len(created))
        return created

    def list_active(self, repository: Repository) -> list[Badge]:
        return self.badges.list_active(repository.id)

    def get_badge_stats(self, badge_id: int) -> dict[str, Any]:
        badge = self.badges.get_by_id(badge_id)
        if badge is None:
            raise NotFoundError(f"Badge {badge_id} not found")
        return {"badge": badge.to_summary(), **AwardRepository(self.session).badge_stats(badge.id)}
