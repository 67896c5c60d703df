"""
Repository pattern implementations for data access.

Usage:
    from badge_core.repositories import AwardRepository
    from badge_core.db import db

    with db.session() as session:
        awards = AwardRepository(session)
        badge_ids = awards.awarded_badge_ids(user_id, repository_id)
"""

from .award_repository import AwardRepository
from .badge_repository import BadgeRepository
from .base import BaseRepository
from .membership_repository import MembershipRepository
from .pull_request_repository import PullRequestRepository
from .repo_repository import RepoRepository
from .user_repository import UserRepository
from .webhook_event_repository import WebhookEventRepository

__all__ = [
    "BaseRepository",
    "AwardRepository",
    "BadgeRepository",
    "MembershipRepository",
    "PullRequestRepository",
    "RepoRepository",
    "UserRepository",
    "WebhookEventRepository",
]
