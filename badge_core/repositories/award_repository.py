"""Award ledger: at most one UserBadge per (user, badge)."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from badge_core.logging import get_logger
from badge_core.models import Badge, UserBadge

from .base import BaseRepository

logger = get_logger("repository.award")


class AwardRepository(BaseRepository[UserBadge]):
    """Repository for UserBadge award facts."""

    model = UserBadge

    def awarded_badge_ids(self, user_id: int, repository_id: int) -> set[int]:
        rows = (
            self.session.query(UserBadge.badge_id)
            .filter(UserBadge.user_id == user_id, UserBadge.repository_id == repository_id)
            .all()
        )
        return {row[0] for row in rows}

    def list_for_user(self, user_id: int, repository_id: int) -> list[UserBadge]:
        return (
            self.session.query(UserBadge)
            .filter(UserBadge.user_id == user_id, UserBadge.repository_id == repository_id)
            .order_by(UserBadge.awarded_at.asc())
            .all()
        )

    def get_for_user(self, award_id: int, user_id: int) -> UserBadge | None:
        return (
            self.session.query(UserBadge)
            .filter(UserBadge.id == award_id, UserBadge.user_id == user_id)
            .first()
        )

    def create_award(
        self,
        user_id: int,
        badge: Badge,
        actual_value: int,
        awarded_by: str,
        metadata: dict[str, Any] | None = None,
    ) -> UserBadge | None:
        """
        Insert an award inside a savepoint.

        Returns None when the (user, badge) pair already exists; the unique
        constraint decides which concurrent writer wins. Other database
        errors propagate.
        """
        now = datetime.now(timezone.utc)
        try:
            with self.session.begin_nested():
                award = UserBadge(
                    user_id=user_id,
                    badge_id=badge.id,
                    repository_id=badge.repository_id,
                    actual_value=actual_value,
                    awarded_by=awarded_by,
                    awarded_at=now,
                    criteria_met_at=now,
                    award_metadata=metadata or {},
                )
                self.session.add(award)
        except IntegrityError:
            logger.info("award_already_exists", user_id=user_id, badge_id=badge.id)
            return None

        logger.info(
            "badge_awarded",
            user_id=user_id,
            badge_id=badge.id,
            repository_id=badge.repository_id,
            actual_value=actual_value,
            awarded_by=awarded_by,
        )
        return award

    def repository_stats(self, repository_id: int, since: datetime) -> dict[str, int]:
        total_awards, unique_recipients = (
            self.session.query(func.count(UserBadge.id), func.count(func.distinct(UserBadge.user_id)))
            .filter(UserBadge.repository_id == repository_id)
            .one()
        )
        recent_awards = (
            self.session.query(func.count(UserBadge.id))
            .filter(UserBadge.repository_id == repository_id, UserBadge.awarded_at >= since)
            .scalar()
        )
        return {
            "total_awards": total_awards or 0,
            "unique_recipients": unique_recipients or 0,
            "recent_awards": recent_awards or 0,
        }

    def badge_stats(self, badge_id: int) -> dict[str, Any]:
        row = (
            self.session.query(
                func.count(UserBadge.id),
                func.avg(UserBadge.actual_value),
                func.max(UserBadge.actual_value),
                func.min(UserBadge.actual_value),
                func.min(UserBadge.awarded_at),
                func.max(UserBadge.awarded_at),
            )
            .filter(UserBadge.badge_id == badge_id)
            .one()
        )
        total, avg_value, max_value, min_value, first_awarded, last_awarded = row
        return {
            "total_awarded": total or 0,
            "avg_value": round(float(avg_value), 2) if avg_value is not None else 0,
            "max_value": max_value or 0,
            "min_value": min_value or 0,
            "first_awarded": first_awarded,
            "last_awarded": last_awarded,
        }
