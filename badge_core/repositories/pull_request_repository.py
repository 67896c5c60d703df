"""Pull request ledger: upserts from webhooks and per-contributor aggregation."""

from typing import Any

from sqlalchemy import and_, case, func
from sqlalchemy.exc import IntegrityError

from badge_core.logging import get_logger
from badge_core.models import PullRequest, User

from .base import BaseRepository

logger = get_logger("repository.pull_request")


def _aggregate_columns():
    return (
        func.count(PullRequest.id),
        func.coalesce(func.sum(case((PullRequest.merged.is_(True), 1), else_=0)), 0),
        func.coalesce(func.sum(case((PullRequest.state == "open", 1), else_=0)), 0),
        func.coalesce(
            func.sum(
                case((and_(PullRequest.state == "closed", PullRequest.merged.is_(False)), 1), else_=0)
            ),
            0,
        ),
        func.coalesce(func.sum(PullRequest.commit_count), 0),
        func.coalesce(func.sum(PullRequest.additions), 0),
        func.coalesce(func.sum(PullRequest.deletions), 0),
        func.coalesce(func.sum(PullRequest.changed_files), 0),
        func.min(PullRequest.github_created_at),
        func.max(PullRequest.github_created_at),
    )


def _row_to_dict(row) -> dict[str, Any]:
    (
        total_prs,
        merged_prs,
        open_prs,
        closed_prs,
        total_commits,
        additions,
        deletions,
        changed_files,
        first_contribution,
        last_contribution,
    ) = row
    return {
        "total_prs": int(total_prs or 0),
        "merged_prs": int(merged_prs or 0),
        "open_prs": int(open_prs or 0),
        "closed_prs": int(closed_prs or 0),
        "total_commits": int(total_commits or 0),
        "total_additions": int(additions or 0),
        "total_deletions": int(deletions or 0),
        "changed_files": int(changed_files or 0),
        "first_contribution": first_contribution,
        "last_contribution": last_contribution,
    }


def _apply_fields(pull_request: PullRequest, fields: dict[str, Any]) -> None:
    for key, value in fields.items():
        if hasattr(pull_request, key):
            setattr(pull_request, key, value)


class PullRequestRepository(BaseRepository[PullRequest]):
    """Repository for the locally ingested pull request ledger."""

    model = PullRequest

    def get_by_github_id(self, repository_id: int, github_pr_id: int) -> PullRequest | None:
        return (
            self.session.query(PullRequest)
            .filter(
                PullRequest.repository_id == repository_id,
                PullRequest.github_pr_id == github_pr_id,
            )
            .first()
        )

    def upsert(self, repository_id: int, user: User, github_pr_id: int, **fields: Any) -> PullRequest:
        """
        Create or update the ledger row for one upstream pull request.

        Two deliveries for the same pull request may race to insert it; the
        loser re-reads the winner's row and applies its fields there.
        """
        pull_request = self.get_by_github_id(repository_id, github_pr_id)
        created = pull_request is None

        if created:
            try:
                with self.session.begin_nested():
                    pull_request = PullRequest(
                        repository_id=repository_id,
                        user_id=user.id,
                        github_pr_id=github_pr_id,
                    )
                    _apply_fields(pull_request, fields)
                    self.session.add(pull_request)
            except IntegrityError:
                logger.info("pull_request_conflict", repository_id=repository_id, github_pr_id=github_pr_id)
                pull_request = self.get_by_github_id(repository_id, github_pr_id)
                if pull_request is None:
                    raise
                created = False

        if not created:
            _apply_fields(pull_request, fields)
            self.session.flush()

        logger.info(
            "pull_request_recorded",
            repository_id=repository_id,
            user_id=user.id,
            number=pull_request.number,
            state=pull_request.state,
            created=created,
        )
        return pull_request

    def aggregate_for_user(self, repository_id: int, user_id: int) -> dict[str, Any]:
        row = (
            self.session.query(*_aggregate_columns())
            .filter(PullRequest.repository_id == repository_id, PullRequest.user_id == user_id)
            .one()
        )
        return _row_to_dict(row)

    def aggregate_by_user(self, repository_id: int) -> dict[int, dict[str, Any]]:
        rows = (
            self.session.query(PullRequest.user_id, *_aggregate_columns())
            .filter(PullRequest.repository_id == repository_id)
            .group_by(PullRequest.user_id)
            .order_by(PullRequest.user_id)
            .all()
        )
        return {row[0]: _row_to_dict(row[1:]) for row in rows}

    def author_ids(self, repository_id: int) -> list[int]:
        rows = (
            self.session.query(PullRequest.user_id)
            .filter(PullRequest.repository_id == repository_id)
            .distinct()
            .all()
        )
        return [row[0] for row in rows]
