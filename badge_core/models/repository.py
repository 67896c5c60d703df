"""
Imported repository and membership models.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from badge_core.constants import MAX_REPOSITORY_TOPICS, ROLE_CONTRIBUTOR, ROLE_OWNER

from .base import Base

if TYPE_CHECKING:
    from badge_core.schemas import RepositorySnapshot

    from .badge import Badge
    from .user import User


class Repository(Base):
    """
    A GitHub repository imported into the badge system.

    Identity is the upstream numeric id. Snapshot fields are overwritten by
    sync_data; rows are deactivated rather than deleted.
    """

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    github_id: Mapped[int] = mapped_column(BigInteger, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    language: Mapped[Optional[str]] = mapped_column(String(100))
    private: Mapped[bool] = mapped_column(Boolean, default=False)
    url: Mapped[Optional[str]] = mapped_column(String(512))
    clone_url: Mapped[Optional[str]] = mapped_column(String(512))
    default_branch: Mapped[str] = mapped_column(String(255), default="main")
    stargazers_count: Mapped[int] = mapped_column(Integer, default=0)
    forks_count: Mapped[int] = mapped_column(Integer, default=0)
    topics: Mapped[List[str]] = mapped_column(JSON, default=list)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    last_sync_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )

    owner: Mapped["User"] = relationship("User")
    badges: Mapped[list["Badge"]] = relationship(
        "Badge", back_populates="repository", order_by="Badge.criteria_value"
    )
    memberships: Mapped[list["UserRepositoryMembership"]] = relationship(
        "UserRepositoryMembership", back_populates="repository"
    )

    def sync_data(self, snapshot: "RepositorySnapshot") -> None:
        """Overwrite mutable snapshot fields from an upstream snapshot and bump last_sync_at."""
        self.name = snapshot.name
        self.description = snapshot.description
        self.language = snapshot.language
        self.private = snapshot.private
        self.stargazers_count = snapshot.stargazers_count
        self.forks_count = snapshot.forks_count
        self.topics = list(snapshot.topics[:MAX_REPOSITORY_TOPICS])
        self.default_branch = snapshot.default_branch or "main"
        self.last_sync_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "github_id": self.github_id,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "language": self.language,
            "private": self.private,
            "url": self.url,
            "default_branch": self.default_branch,
            "stargazers_count": self.stargazers_count,
            "forks_count": self.forks_count,
            "topics": self.topics or [],
            "active": self.active,
            "last_sync_at": self.last_sync_at.isoformat() if self.last_sync_at else None,
        }


class UserRepositoryMembership(Base):
    """
    (user, repository, role) relation recorded at import time.

    Permissions are derived from role: owners manage badges and invite
    contributors, everyone can view analytics.
    """

    __tablename__ = "user_repositories"
    __table_args__ = (
        UniqueConstraint("user_id", "repository_id", name="uq_user_repositories_user_repo"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), index=True
    )
    role: Mapped[str] = mapped_column(String(20), default=ROLE_CONTRIBUTOR)
    can_manage_badges: Mapped[bool] = mapped_column(Boolean, default=False)
    can_view_analytics: Mapped[bool] = mapped_column(Boolean, default=True)
    can_invite_contributors: Mapped[bool] = mapped_column(Boolean, default=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )

    user: Mapped["User"] = relationship("User", back_populates="memberships")
    repository: Mapped["Repository"] = relationship("Repository", back_populates="memberships")

    def apply_role(self, role: str) -> None:
        self.role = role
        is_owner = role == ROLE_OWNER
        self.can_manage_badges = is_owner
        self.can_view_analytics = True
        self.can_invite_contributors = is_owner
