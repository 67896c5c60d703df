"""Celery task definitions."""

from workers.tasks.awarding import award_all_repositories, award_repository
from workers.tasks.sync import sync_repository

__all__ = [
    "award_all_repositories",
    "award_repository",
    "sync_repository",
]
