"""
SQLAlchemy models for Contribution Badges.

Usage:
    from badge_core.models import User, Repository, Badge, UserBadge
"""

from .badge import Badge, UserBadge
from .base import Base
from .pull_request import PullRequest
from .repository import Repository, UserRepositoryMembership
from .user import User
from .webhook_event import WebhookEvent

__all__ = [
    # Base
    "Base",
    # User
    "User",
    # Repository
    "Repository",
    "UserRepositoryMembership",
    # Badges
    "Badge",
    "UserBadge",
    # Ledgers
    "PullRequest",
    "WebhookEvent",
]
