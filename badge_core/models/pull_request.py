"""
Pull request ledger model.

Rows are upserted from pull_request webhook deliveries and aggregated by the
ledger statistics provider.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PullRequest(Base):
    """A pull request authored by a local user in an imported repository."""

    __tablename__ = "pull_requests"
    __table_args__ = (
        UniqueConstraint("repository_id", "github_pr_id", name="uq_pull_requests_repo_pr"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    github_pr_id: Mapped[int] = mapped_column(BigInteger)
    number: Mapped[int] = mapped_column(Integer)
    title: Mapped[str] = mapped_column(String(512))
    state: Mapped[str] = mapped_column(String(16), default="open")
    merged: Mapped[bool] = mapped_column(Boolean, default=False)
    merged_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    github_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    github_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    base_branch: Mapped[Optional[str]] = mapped_column(String(255))
    head_branch: Mapped[Optional[str]] = mapped_column(String(255))
    commit_count: Mapped[int] = mapped_column(Integer, default=1)
    changed_files: Mapped[int] = mapped_column(Integer, default=0)
    additions: Mapped[int] = mapped_column(Integer, default=0)
    deletions: Mapped[int] = mapped_column(Integer, default=0)
    labels: Mapped[List[str]] = mapped_column(JSON, default=list)
    url: Mapped[Optional[str]] = mapped_column(String(512))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
