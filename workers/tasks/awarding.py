"""
Batch badge awarding tasks.

Queue: awarding

award_all_repositories fans out one award_repository task per active
repository. Each of those is safe to run concurrently with webhook-driven
awarding; the (user, badge) unique constraint absorbs the overlap.
"""

from celery import group, shared_task
from sqlalchemy.exc import SQLAlchemyError

from badge_core.db import db
from badge_core.logging import LogContext, get_logger
from badge_core.repositories import RepoRepository
from badge_core.services import BadgeAwardingEngine

logger = get_logger("worker.awarding")


@shared_task(
    bind=True,
    name="workers.tasks.awarding.award_repository",
    max_retries=3,
    default_retry_delay=60,
    soft_time_limit=600,
    time_limit=900,
)
def award_repository(self, repository_id: int, force_recheck: bool = False) -> dict:
    """
    Evaluate every contributor of one repository.

    Returns the engine's batch summary, or an error dict when the
    repository is gone or storage keeps failing.
    """
    with LogContext(task="award_repository", repository_id=repository_id):
        logger.info("award_task_started", force_recheck=force_recheck)
        try:
            with db.session() as session:
                repository = RepoRepository(session).get_active(repository_id)
                if repository is None:
                    logger.warning("award_task_repository_missing")
                    return {"success": False, "repository_id": repository_id, "error": "Repository not found"}

                summary = BadgeAwardingEngine(session).award_for_repository(
                    repository, force_recheck=force_recheck
                )
            logger.info("award_task_complete", awards_given=summary.get("awards_given", 0))
            return summary

        except SQLAlchemyError as exc:
            logger.error("award_task_failed", error=str(exc), error_type=type(exc).__name__)
            raise self.retry(exc=exc)


@shared_task(
    name="workers.tasks.awarding.award_all_repositories",
    soft_time_limit=120,
    time_limit=300,
)
def award_all_repositories(force_recheck: bool = False) -> dict:
    """Queue award_repository for every active repository."""
    with db.session() as session:
        repository_ids = RepoRepository(session).list_active_ids()

    if not repository_ids:
        logger.info("award_all_no_repositories")
        return {"queued": 0, "repository_ids": []}

    group(award_repository.s(repository_id, force_recheck) for repository_id in repository_ids).apply_async()
    logger.info("award_all_queued", repositories=len(repository_ids), force_recheck=force_recheck)
    return {"queued": len(repository_ids), "repository_ids": repository_ids}
