"""
Badge awarding engine.

Combines the badge catalog, a statistics provider, the eligibility
evaluator and the award ledger. Two entry points share one procedure:

- award_for_user: a single (user, repository) pair, used by webhooks and
  manual checks.
- award_for_repository: every known contributor of a repository.

Award creation relies on the (user, badge) unique constraint; losing a race
is a silent no-op, so re-evaluation can run concurrently and repeatedly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from badge_core.constants import (
    AWARDED_BY_MANUAL,
    AWARDED_BY_SYSTEM,
    RECENT_AWARD_WINDOW_DAYS,
)
from badge_core.exceptions import NotFoundError, UpstreamFetchError
from badge_core.logging import LogContext, get_logger, log_timing
from badge_core.models import Badge, Repository, User, UserBadge
from badge_core.repositories import (
    AwardRepository,
    BadgeRepository,
    MembershipRepository,
    UserRepository,
)

from . import eligibility
from .badge_catalog import BadgeCatalog
from .statistics import ContributorStatistics, StatisticsProvider, build_statistics_provider

logger = get_logger("services.awarding")


@dataclass
class AwardTrigger:
    """Why an evaluation ran. `kind` is stored as UserBadge.awarded_by."""

    kind: str = AWARDED_BY_SYSTEM
    event: str = "batch_award"
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AwardResult:
    """Outcome of evaluating one (user, repository) pair."""

    user_id: int
    repository_id: int
    statistics: ContributorStatistics
    new_awards: list[UserBadge] = field(default_factory=list)
    badges_checked: int = 0
    already_awarded: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    upstream_error: str | None = None

    @property
    def awards_given(self) -> int:
        return len(self.new_awards)


class BadgeAwardingEngine:
    """Evaluates contributors against a repository's active badges and records awards."""

    def __init__(self, session: Session, statistics_provider: StatisticsProvider | None = None):
        self.session = session
        self.statistics = statistics_provider or build_statistics_provider(session)
        self.catalog = BadgeCatalog(session)
        self.awards = AwardRepository(session)
        self.users = UserRepository(session)
        self.memberships = MembershipRepository(session)

    # =========================================================================
    # Entry points
    # =========================================================================

    def award_for_user(
        self,
        repository: Repository,
        user: User,
        trigger: AwardTrigger | None = None,
        force_recheck: bool = False,
    ) -> AwardResult:
        """Real-time path for one contributor."""
        trigger = trigger or AwardTrigger()
        with LogContext(repository_id=repository.id, user_id=user.id, trigger=trigger.event):
            try:
                stats = self.statistics.get_statistics(repository, user)
            except UpstreamFetchError as exc:
                logger.warning("award_skipped_upstream_failure", error=str(exc))
                return AwardResult(
                    user_id=user.id,
                    repository_id=repository.id,
                    statistics=ContributorStatistics.empty(),
                    upstream_error=str(exc),
                )

            if not stats.has_activity:
                logger.debug("award_skipped_no_activity")
                return AwardResult(user_id=user.id, repository_id=repository.id, statistics=stats)

            badges = self.catalog.list_active(repository)
            return self._evaluate(repository, user, stats, badges, trigger, force_recheck)

    @log_timing("batch_award")
    def award_for_repository(
        self,
        repository: Repository,
        force_recheck: bool = False,
        user_id: int | None = None,
    ) -> dict[str, Any]:
        """Batch path over every known contributor (or only `user_id`)."""
        badges = self.catalog.list_active(repository)
        if not badges:
            return {
                "success": True,
                "message": "No active badges found for repository",
                "repository_name": repository.full_name,
                "awards_given": 0,
            }

        user_ids = [user_id] if user_id is not None else None
        repo_stats = self.statistics.get_repository_statistics(repository, user_ids)

        summary: dict[str, Any] = {
            "success": True,
            "repository_name": repository.full_name,
            "badges_checked": len(badges),
            "contributors_checked": len(repo_stats.contributors),
            "awards_given": 0,
            "new_awards": [],
            "errors": [
                {"user_id": failed_id, "badge_id": None, "error": error}
                for failed_id, error in repo_stats.errors.items()
            ],
        }

        for contributor_id, stats in repo_stats.contributors.items():
            user = self.users.get_by_id(contributor_id)
            if user is None or not stats.has_activity:
                continue

            trigger = AwardTrigger(
                kind=AWARDED_BY_SYSTEM,
                event="batch_award",
                metadata={"batch_processing": True, "contributor_stats": stats.to_dict()},
            )
            result = self._evaluate(repository, user, stats, badges, trigger, force_recheck)

            summary["awards_given"] += result.awards_given
            summary["errors"].extend(result.errors)
            for award in result.new_awards:
                summary["new_awards"].append(
                    {
                        "user_id": user.id,
                        "user_email": user.email,
                        "badge_id": award.badge_id,
                        "badge_name": award.badge.name,
                        "actual_value": award.actual_value,
                    }
                )

        logger.info(
            "batch_award_complete",
            repository_id=repository.id,
            contributors=summary["contributors_checked"],
            awards_given=summary["awards_given"],
            errors=len(summary["errors"]),
            force_recheck=force_recheck,
        )
        return summary

    def check_and_award(self, user: User, repository: Repository) -> dict[str, Any]:
        """Manual check for the calling user. Requires an active membership."""
        membership = self.memberships.get_active(user.id, repository.id)
        if membership is None:
            raise NotFoundError("Repository not found or access denied")

        result = self.award_for_user(
            repository, user, AwardTrigger(kind=AWARDED_BY_MANUAL, event="manual_check")
        )

        return {
            "newly_awarded": [
                {
                    **award.badge.to_summary(),
                    "actual_value": award.actual_value,
                    "awarded_at": award.awarded_at,
                }
                for award in result.new_awards
            ],
            "contributor_stats": result.statistics.to_dict(),
            "repository_name": repository.full_name,
            "user_role": membership.role,
            "total_badges": BadgeRepository(self.session).count_active(repository.id),
            "awarded_badges": len(self.awards.awarded_badge_ids(user.id, repository.id)),
            "errors": result.errors,
            "upstream_error": result.upstream_error,
        }

    def get_badge_progress(self, user: User, repository: Repository) -> dict[str, Any]:
        """Per-badge progress for a user; earned badges keep their award timestamp."""
        upstream_error = None
        try:
            stats = self.statistics.get_statistics(repository, user)
        except UpstreamFetchError as exc:
            stats = ContributorStatistics.empty()
            upstream_error = str(exc)

        earned = {award.badge_id: award for award in self.awards.list_for_user(user.id, repository.id)}
        progress = []
        for badge in self.catalog.list_active(repository):
            award = earned.get(badge.id)
            progress.append(
                {
                    "badge": badge.to_summary(),
                    "earned": award is not None,
                    "earned_at": award.awarded_at if award else None,
                    "current_value": eligibility.actual_value(stats, badge),
                    "required_value": badge.criteria_value,
                    "progress": 100.0 if award else eligibility.progress_percent(stats, badge),
                }
            )

        return {
            "repository_name": repository.full_name,
            "contributor_stats": stats.to_dict(),
            "progress": progress,
            "total_badges": len(progress),
            "earned_badges": sum(1 for item in progress if item["earned"]),
            "upstream_error": upstream_error,
        }

    def get_repository_badge_stats(self, repository: Repository) -> dict[str, Any]:
        since = datetime.now(timezone.utc) - timedelta(days=RECENT_AWARD_WINDOW_DAYS)
        return {
            "repository_name": repository.full_name,
            "total_badges": BadgeRepository(self.session).count_active(repository.id),
            **self.awards.repository_stats(repository.id, since),
        }

    def acknowledge_award(self, user: User, award_id: int) -> UserBadge:
        award = self.awards.get_for_user(award_id, user.id)
        if award is None:
            raise NotFoundError(f"Award {award_id} not found")
        award.acknowledge()
        self.session.flush()
        return award

    # =========================================================================
    # Core procedure
    # =========================================================================

    def _evaluate(
        self,
        repository: Repository,
        user: User,
        stats: ContributorStatistics,
        badges: list[Badge],
        trigger: AwardTrigger,
        force_recheck: bool,
    ) -> AwardResult:
        result = AwardResult(
            user_id=user.id,
            repository_id=repository.id,
            statistics=stats,
            badges_checked=len(badges),
        )
        awarded = set() if force_recheck else self.awards.awarded_badge_ids(user.id, repository.id)

        for badge in badges:
            if badge.id in awarded:
                continue
            if not eligibility.is_eligible(stats, badge):
                continue

            try:
                award = self.awards.create_award(
                    user_id=user.id,
                    badge=badge,
                    actual_value=eligibility.actual_value(stats, badge),
                    awarded_by=trigger.kind,
                    metadata={"triggering_event": trigger.event, **trigger.metadata},
                )
            except SQLAlchemyError as exc:
                logger.error(
                    "award_write_failed",
                    user_id=user.id,
                    badge_id=badge.id,
                    error=str(exc),
                )
                result.errors.append({"user_id": user.id, "badge_id": badge.id, "error": str(exc)})
                continue

            if award is None:
                result.already_awarded += 1
            else:
                result.new_awards.append(award)

        return result
