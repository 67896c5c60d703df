"""
Contributor statistics providers.

Two interchangeable strategies produce the same ContributorStatistics shape:

- LedgerStatisticsProvider aggregates locally ingested pull request rows.
- GitHubStatisticsProvider pages the live GitHub API.

The live provider counts commits twice, once from merged pull requests and
once from the repository history filtered by author, and keeps the larger
number. This is an approximation: squash merges and direct pushes can make
either source undercount, and summing would double count.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy.orm import Session

from badge_core.api import github_api
from badge_core.config import get_settings
from badge_core.exceptions import UpstreamFetchError
from badge_core.logging import get_logger
from badge_core.models import Repository, User
from badge_core.repositories import MembershipRepository, PullRequestRepository, UserRepository

logger = get_logger("services.statistics")

SOURCE_LEDGER = "ledger"
SOURCE_GITHUB = "github"


@dataclass
class ContributorStatistics:
    """Per (user, repository) activity summary used as evaluator input."""

    total_prs: int = 0
    merged_prs: int = 0
    open_prs: int = 0
    closed_prs: int = 0
    total_commits: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    changed_files: int = 0
    first_contribution: datetime | None = None
    last_contribution: datetime | None = None

    @classmethod
    def empty(cls) -> "ContributorStatistics":
        return cls()

    @property
    def total_lines_changed(self) -> int:
        return self.total_additions + self.total_deletions

    @property
    def has_activity(self) -> bool:
        return self.total_prs > 0 or self.total_commits > 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["total_lines_changed"] = self.total_lines_changed
        for key in ("first_contribution", "last_contribution"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass
class RepositoryStatistics:
    """Repository-wide statistics: one record per contributor, plus per-user fetch errors."""

    contributors: dict[int, ContributorStatistics] = field(default_factory=dict)
    errors: dict[int, str] = field(default_factory=dict)


class StatisticsProvider:
    """Interface shared by the ledger and live strategies."""

    source: str = ""

    def __init__(self, session: Session):
        self.session = session

    def get_statistics(self, repository: Repository, user: User) -> ContributorStatistics:
        raise NotImplementedError

    def get_repository_statistics(
        self, repository: Repository, user_ids: Iterable[int] | None = None
    ) -> RepositoryStatistics:
        raise NotImplementedError

    def contributor_ids(self, repository: Repository) -> list[int]:
        """Pull request authors and active members of the repository."""
        ids = set(PullRequestRepository(self.session).author_ids(repository.id))
        ids.update(MembershipRepository(self.session).list_active_user_ids(repository.id))
        return sorted(ids)


class LedgerStatisticsProvider(StatisticsProvider):
    """Aggregates the locally persisted pull request ledger. Deterministic, no I/O beyond the database."""

    source = SOURCE_LEDGER

    def get_statistics(self, repository: Repository, user: User) -> ContributorStatistics:
        row = PullRequestRepository(self.session).aggregate_for_user(repository.id, user.id)
        return ContributorStatistics(**row)

    def get_repository_statistics(
        self, repository: Repository, user_ids: Iterable[int] | None = None
    ) -> RepositoryStatistics:
        rows = PullRequestRepository(self.session).aggregate_by_user(repository.id)
        wanted = set(user_ids) if user_ids is not None else None
        return RepositoryStatistics(
            contributors={
                user_id: ContributorStatistics(**row)
                for user_id, row in rows.items()
                if wanted is None or user_id in wanted
            }
        )


class GitHubStatisticsProvider(StatisticsProvider):
    """
    Live statistics from the GitHub REST API.

    Uses the contributor's own token when available, otherwise PAT_TOKEN.
    Any UpstreamFetchError aborts the computation for that user; no partial
    record is returned.
    """

    source = SOURCE_GITHUB

    def __init__(self, session: Session):
        super().__init__(session)
        self.settings = get_settings()
        self.users = UserRepository(session)

    def get_statistics(self, repository: Repository, user: User) -> ContributorStatistics:
        token = self.users.get_decrypted_token(user)
        try:
            return self._fetch(repository.full_name, user.github_username, token)
        except UpstreamFetchError as exc:
            logger.warning(
                "live_statistics_failed",
                repository=repository.full_name,
                user_id=user.id,
                error=str(exc),
                upstream_status=exc.upstream_status,
            )
            raise

    def get_repository_statistics(
        self, repository: Repository, user_ids: Iterable[int] | None = None
    ) -> RepositoryStatistics:
        result = RepositoryStatistics()
        for user_id in user_ids if user_ids is not None else self.contributor_ids(repository):
            user = self.users.get_by_id(user_id)
            if user is None:
                continue
            try:
                result.contributors[user_id] = self.get_statistics(repository, user)
            except UpstreamFetchError as exc:
                result.errors[user_id] = str(exc)
        return result

    def _fetch(self, full_name: str, login: str, token: str | None) -> ContributorStatistics:
        pulls = github_api.list_pull_requests(full_name, token, self.settings.stats_max_pr_pages)
        login_key = login.lower()
        authored = [
            pr for pr in pulls if ((pr.get("user") or {}).get("login") or "").lower() == login_key
        ]
        merged = [pr for pr in authored if pr.get("merged_at")]

        pr_commits = additions = deletions = changed_files = 0
        for pr in merged:
            number = pr.get("number")
            if not isinstance(number, int):
                raise UpstreamFetchError(f"Pull request without a number in {full_name}")
            pr_commits += len(github_api.list_pull_request_commits(full_name, number, token))
            detail = github_api.get_pull_request(full_name, number, token)
            additions += detail.get("additions") or 0
            deletions += detail.get("deletions") or 0
            changed_files += detail.get("changed_files") or 0

        direct_commits = len(
            github_api.list_commits(full_name, token, author=login, max_pages=self.settings.stats_max_commit_pages)
        )

        created = [_parse_timestamp(pr.get("created_at")) for pr in authored]
        created = [ts for ts in created if ts is not None]

        stats = ContributorStatistics(
            total_prs=len(authored),
            merged_prs=len(merged),
            open_prs=sum(1 for pr in authored if pr.get("state") == "open"),
            closed_prs=sum(1 for pr in authored if pr.get("state") == "closed" and not pr.get("merged_at")),
            total_commits=max(pr_commits, direct_commits),
            total_additions=additions,
            total_deletions=deletions,
            changed_files=changed_files,
            first_contribution=min(created) if created else None,
            last_contribution=max(created) if created else None,
        )
        logger.info(
            "live_statistics_fetched",
            repository=full_name,
            login=login,
            total_prs=stats.total_prs,
            merged_prs=stats.merged_prs,
            pr_commits=pr_commits,
            direct_commits=direct_commits,
        )
        return stats


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def build_statistics_provider(session: Session, source: str | None = None) -> StatisticsProvider:
    """Select a strategy by name; defaults to STATISTICS_SOURCE."""
    source = (source or get_settings().statistics_source).lower()
    if source == SOURCE_GITHUB:
        return GitHubStatisticsProvider(session)
    if source == SOURCE_LEDGER:
        return LedgerStatisticsProvider(session)
    raise ValueError(f"Unknown statistics source: {source}")
