"""Data access for imported repositories."""

from sqlalchemy.orm import selectinload

from badge_core.constants import MAX_REPOSITORY_TOPICS
from badge_core.exceptions import NotFoundError
from badge_core.models import Repository, User
from badge_core.schemas import RepositorySnapshot

from .base import BaseRepository


class RepoRepository(BaseRepository[Repository]):
    """Repository for imported GitHub repositories."""

    model = Repository

    def get_by_github_id(self, github_id: int) -> Repository | None:
        return self.session.query(Repository).filter(Repository.github_id == github_id).first()

    def get_by_full_name(self, full_name: str | None) -> Repository | None:
        if not full_name:
            return None
        return (
            self.session.query(Repository)
            .filter(Repository.full_name == full_name.lower())
            .first()
        )

    def get_active(self, repository_id: int) -> Repository | None:
        return (
            self.session.query(Repository)
            .options(selectinload(Repository.badges))
            .filter(Repository.id == repository_id, Repository.active.is_(True))
            .first()
        )

    def list_active_ids(self) -> list[int]:
        rows = (
            self.session.query(Repository.id)
            .filter(Repository.active.is_(True))
            .order_by(Repository.id)
            .all()
        )
        return [row[0] for row in rows]

    def create_from_snapshot(self, snapshot: RepositorySnapshot, owner: User) -> Repository:
        """Insert a new repository row from an upstream snapshot."""
        return self.create(
            github_id=snapshot.id,
            name=snapshot.name,
            full_name=snapshot.full_name.lower(),
            owner_id=owner.id,
            description=snapshot.description,
            language=snapshot.language,
            private=snapshot.private,
            url=snapshot.html_url,
            clone_url=snapshot.clone_url,
            default_branch=snapshot.default_branch or "main",
            stargazers_count=snapshot.stargazers_count,
            forks_count=snapshot.forks_count,
            topics=list(snapshot.topics[:MAX_REPOSITORY_TOPICS]),
        )

    def require_active(self, repository_id: int) -> Repository:
        repository = self.get_active(repository_id)
        if repository is None:
            raise NotFoundError(f"Repository {repository_id} not found")
        return repository
