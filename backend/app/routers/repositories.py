"""
Repository endpoints: import, sync, batch awarding and progress.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from kombu.exceptions import OperationalError
from sqlalchemy.orm import Session

from badge_core.logging import get_logger
from badge_core.models import Repository, User
from badge_core.repositories import MembershipRepository, RepoRepository
from badge_core.services import BadgeAwardingEngine, RepositoryImportService

from ..auth.dependencies import get_current_user
from ..database import get_db
from ..schemas import (
    QueuedTaskResponse,
    RepositoryImportRequest,
    RepositoryImportResponse,
    RepositoryResponse,
)

logger = get_logger("api.repositories")

router = APIRouter(prefix="/repositories", tags=["repositories"])


def _get_member_repository(db: Session, user: User, repository_id: int) -> Repository:
    """Active repository the user belongs to, or 404."""
    repository = RepoRepository(db).require_active(repository_id)
    if MembershipRepository(db).get_active(user.id, repository.id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Repository not found or access denied",
        )
    return repository


def _get_managed_repository(db: Session, user: User, repository_id: int) -> Repository:
    """Active repository the user can manage badges for, or 403."""
    repository = RepoRepository(db).require_active(repository_id)
    membership = MembershipRepository(db).get_active(user.id, repository.id)
    if membership is None or not membership.can_manage_badges:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only repository owners can manage badges",
        )
    return repository


@router.post("/import", response_model=RepositoryImportResponse)
def import_repositories(
    request: RepositoryImportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Import repositories for the current user.

    Owners get the default badge set on first import. Per-repository
    failures are reported in `errors`; the rest of the batch still lands.
    """
    service = RepositoryImportService(db)
    if request.repository_ids is not None:
        result = service.import_by_ids(current_user, request.repository_ids)
    else:
        result = service.import_repositories(current_user, request.repositories or [])
    return result.to_dict()


@router.post("/{repository_id}/sync", response_model=RepositoryResponse)
def sync_repository(
    repository_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repository = _get_managed_repository(db, current_user, repository_id)
    RepositoryImportService(db).sync_repository(repository, current_user)
    db.commit()
    return repository.to_dict()


@router.post("/{repository_id}/award-badges")
def award_badges(
    repository_id: int,
    force_recheck: bool = False,
    user_id: int | None = None,
    run_async: bool = Query(default=False, alias="async"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Evaluate every contributor of the repository.

    With `async=true` the run is queued on the awarding worker instead.
    """
    repository = _get_managed_repository(db, current_user, repository_id)

    if run_async:
        from workers.tasks.awarding import award_repository

        try:
            task = award_repository.delay(repository.id, force_recheck)
        except OperationalError as exc:
            logger.error("award_task_enqueue_failed", repository_id=repository.id, error=str(exc))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Task queue unavailable. Retry without async.",
            ) from exc
        return QueuedTaskResponse(task_id=task.id, repository_id=repository.id)

    summary = BadgeAwardingEngine(db).award_for_repository(
        repository,
        force_recheck=force_recheck,
        user_id=user_id,
    )
    db.commit()
    return summary


@router.get("/{repository_id}/badge-progress")
def badge_progress(
    repository_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repository = _get_member_repository(db, current_user, repository_id)
    return BadgeAwardingEngine(db).get_badge_progress(current_user, repository)


@router.get("/{repository_id}/badge-stats")
def badge_stats(
    repository_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repository = _get_member_repository(db, current_user, repository_id)
    return BadgeAwardingEngine(db).get_repository_badge_stats(repository)
