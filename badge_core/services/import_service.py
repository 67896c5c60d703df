"""
Repository import and sync.

An import call runs as one transaction. Each snapshot gets its own
SAVEPOINT, so a failing snapshot is rolled back and reported while the
others proceed. A storage fault outside that per-snapshot handling rolls
back the whole call.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from badge_core.api import github_api
from badge_core.constants import ROLE_CONTRIBUTOR, ROLE_OWNER
from badge_core.exceptions import (
    BadgeEngineError,
    ConflictError,
    NotFoundError,
    TransactionError,
    UpstreamFetchError,
)
from badge_core.logging import get_logger
from badge_core.models import Repository, User
from badge_core.repositories import BadgeRepository, MembershipRepository, RepoRepository, UserRepository
from badge_core.schemas import RepositorySnapshot

from .badge_catalog import BadgeCatalog

logger = get_logger("services.import")


@dataclass
class ImportResult:
    success: bool = True
    imported: list[dict[str, Any]] = field(default_factory=list)
    updated: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    badges_created: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "imported": self.imported,
            "updated": self.updated,
            "errors": self.errors,
            "badges_created": self.badges_created,
            "error": self.error,
        }


class RepositoryImportService:
    """Creates or refreshes repositories from GitHub snapshots."""

    def __init__(self, session: Session):
        self.session = session
        self.repositories = RepoRepository(session)
        self.memberships = MembershipRepository(session)
        self.users = UserRepository(session)
        self.catalog = BadgeCatalog(session)

    def import_repositories(self, user: User, snapshots: Iterable[dict[str, Any] | RepositorySnapshot]) -> ImportResult:
        """
        Import upstream snapshots for `user` in one transaction.

        Per-snapshot failures land in `errors`. A transaction-level failure
        rolls everything back and returns success=False with no
        imported/updated entries.
        """
        result = ImportResult()

        try:
            for raw in snapshots:
                self._import_one(user, raw, result)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("import_transaction_failed", user_id=user.id, error=str(exc))
            failure = TransactionError(f"Import transaction failed: {exc}")
            return ImportResult(success=False, errors=result.errors, error=str(failure))

        logger.info(
            "import_complete",
            user_id=user.id,
            imported=len(result.imported),
            updated=len(result.updated),
            errors=len(result.errors),
            badges_created=result.badges_created,
        )
        return result

    def import_by_ids(self, user: User, github_ids: Iterable[int]) -> ImportResult:
        """Fetch each repository from GitHub with the user's token, then import."""
        token = self.users.get_decrypted_token(user)
        snapshots: list[dict[str, Any]] = []
        fetch_errors: list[dict[str, Any]] = []
        for github_id in github_ids:
            try:
                snapshots.append(github_api.fetch_repository(github_id, token))
            except UpstreamFetchError as exc:
                fetch_errors.append({"repository": str(github_id), "error": str(exc)})

        result = self.import_repositories(user, snapshots)
        result.errors = fetch_errors + result.errors
        return result

    def sync_repository(self, repository: Repository, user: User | None = None) -> Repository:
        """
        Refresh snapshot fields from GitHub. No membership or catalog changes.

        Raises:
            NotFoundError: repository inactive, or gone upstream.
            UpstreamFetchError: any other GitHub failure.
        """
        if not repository.active:
            raise NotFoundError(f"Repository {repository.id} not found")

        token = self.users.get_decrypted_token(user) if user else None
        if token is None and repository.owner is not None:
            token = self.users.get_decrypted_token(repository.owner)

        try:
            payload = github_api.fetch_repository(repository.github_id, token)
        except UpstreamFetchError as exc:
            if exc.upstream_status == 404:
                raise NotFoundError(f"Repository {repository.full_name} not found on GitHub") from exc
            raise

        repository.sync_data(RepositorySnapshot.model_validate(payload))
        self.session.flush()
        logger.info("repository_synced", repository_id=repository.id, full_name=repository.full_name)
        return repository

    # =========================================================================
    # Internals
    # =========================================================================

    def _import_one(self, user: User, raw: dict[str, Any] | RepositorySnapshot, result: ImportResult) -> None:
        label = _snapshot_label(raw)
        try:
            snapshot = raw if isinstance(raw, RepositorySnapshot) else RepositorySnapshot.model_validate(raw)
        except ValidationError as exc:
            logger.warning("import_item_invalid", repository=label, errors=exc.error_count())
            result.errors.append({"repository": label, "error": str(exc)})
            return

        # A concurrent importer may create the same repository between our
        # lookup and insert; the second attempt takes the update path.
        for attempt in (1, 2):
            try:
                with self.session.begin_nested():
                    kind, entry, badges_created = self._apply_snapshot(user, snapshot)
                break
            except IntegrityError as exc:
                if attempt == 2:
                    conflict = ConflictError(f"Conflicting import of {label}: {exc.orig}")
                    logger.warning("import_item_conflict", repository=label)
                    result.errors.append({"repository": label, "error": str(conflict)})
                    return
                logger.info("import_item_conflict_retry", repository=label)
            except BadgeEngineError as exc:
                logger.warning("import_item_failed", repository=label, error=str(exc))
                result.errors.append({"repository": label, "error": str(exc)})
                return

        result.badges_created += badges_created
        getattr(result, kind).append(entry)

    def _apply_snapshot(self, user: User, snapshot: RepositorySnapshot) -> tuple[str, dict[str, Any], int]:
        role = snapshot.user_role or _derive_role(user, snapshot)
        repository = self.repositories.get_by_github_id(snapshot.id)

        if repository is not None:
            repository.sync_data(snapshot)
            self.session.flush()
            self.memberships.upsert(user, repository, role)
            entry = {"id": repository.id, "name": repository.name, "full_name": repository.full_name, "role": role}
            return "updated", entry, 0

        owner = self.users.get_by_github_username(snapshot.owner.login) or user
        repository = self.repositories.create_from_snapshot(snapshot, owner)

        created_badges = []
        if role == ROLE_OWNER:
            created_badges = self.catalog.seed_defaults(repository, user)

        self.memberships.upsert(user, repository, role)

        entry = {
            "id": repository.id,
            "name": repository.name,
            "full_name": repository.full_name,
            "role": role,
            "badge_count": BadgeRepository(self.session).count_active(repository.id),
        }
        return "imported", entry, len(created_badges)


def _derive_role(user: User, snapshot: RepositorySnapshot) -> str:
    if snapshot.owner.login.lower() == (user.github_username or "").lower():
        return ROLE_OWNER
    return ROLE_CONTRIBUTOR


def _snapshot_label(raw: dict[str, Any] | RepositorySnapshot) -> str:
    if isinstance(raw, RepositorySnapshot):
        return raw.full_name
    if isinstance(raw, dict):
        return str(raw.get("full_name") or raw.get("id") or "unknown")
    return "unknown"
