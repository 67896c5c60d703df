"""
Repository sync tasks.

Queue: sync (GitHub API bound, rate limited)
"""

from celery import shared_task

from badge_core.db import db
from badge_core.exceptions import NotFoundError, UpstreamFetchError
from badge_core.logging import LogContext, get_logger
from badge_core.repositories import RepoRepository
from badge_core.services import RepositoryImportService

logger = get_logger("worker.sync")


@shared_task(
    bind=True,
    name="workers.tasks.sync.sync_repository",
    rate_limit="30/m",
    max_retries=3,
    default_retry_delay=120,
    soft_time_limit=120,
    time_limit=300,
)
def sync_repository(self, repository_id: int) -> dict:
    """
    Refresh a repository's snapshot fields from GitHub.

    Missing repositories are not retried; other upstream failures are.
    """
    with LogContext(task="sync_repository", repository_id=repository_id):
        try:
            with db.session() as session:
                repository = RepoRepository(session).require_active(repository_id)
                RepositoryImportService(session).sync_repository(repository)
                result = {"success": True, "repository": repository.to_dict()}
            logger.info("sync_task_complete")
            return result

        except NotFoundError as exc:
            logger.warning("sync_task_not_found", error=str(exc))
            return {"success": False, "repository_id": repository_id, "error": str(exc)}

        except UpstreamFetchError as exc:
            logger.error("sync_task_failed", error=str(exc), upstream_status=exc.upstream_status)
            raise self.retry(exc=exc)
