"""Data access for badge definitions."""

from sqlalchemy import func

from badge_core.models import Badge

from .base import BaseRepository


class BadgeRepository(BaseRepository[Badge]):
    """Repository for Badge definitions scoped to a repository."""

    model = Badge

    def has_defaults(self, repository_id: int) -> bool:
        return self.exists_where(repository_id=repository_id, is_default=True)

    def list_active(self, repository_id: int) -> list[Badge]:
        """Active badges, cheapest threshold first."""
        return (
            self.session.query(Badge)
            .filter(Badge.repository_id == repository_id, Badge.active.is_(True))
            .order_by(Badge.criteria_value.asc(), Badge.id.asc())
            .all()
        )

    def count_active(self, repository_id: int) -> int:
        return (
            self.session.query(func.count(Badge.id))
            .filter(Badge.repository_id == repository_id, Badge.active.is_(True))
            .scalar()
            or 0
        )
