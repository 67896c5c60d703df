"""
Badge definitions and the award ledger.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from badge_core.constants import (
    AWARDED_BY_SYSTEM,
    CRITERIA_PRS,
    DEFAULT_BADGE_COLOR,
    DEFAULT_BADGE_ICON,
)

from .base import Base

if TYPE_CHECKING:
    from .repository import Repository
    from .user import User


class Badge(Base):
    """
    A single-threshold achievement scoped to one repository.

    Attributes:
        criteria_type: One of CRITERIA_TYPES; only prs and commits are evaluated
        criteria_value: Threshold the metric must reach
        is_default: True for the seeded default set
        active: Inactive badges are never evaluated
    """

    __tablename__ = "badges"
    __table_args__ = (
        UniqueConstraint(
            "repository_id", "criteria_type", "criteria_value", name="uq_badges_repo_criteria"
        ),
        CheckConstraint("criteria_value >= 1 AND criteria_value <= 10000", name="ck_badges_criteria_value"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(String(500))
    criteria_type: Mapped[str] = mapped_column(String(20), default=CRITERIA_PRS)
    criteria_value: Mapped[int] = mapped_column(Integer)
    icon: Mapped[str] = mapped_column(String(16), default=DEFAULT_BADGE_ICON)
    color: Mapped[str] = mapped_column(String(7), default=DEFAULT_BADGE_COLOR)
    difficulty: Mapped[str] = mapped_column(String(20), default="easy")
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )

    repository: Mapped["Repository"] = relationship("Repository", back_populates="badges")
    awards: Mapped[list["UserBadge"]] = relationship("UserBadge", back_populates="badge")

    def to_summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "difficulty": self.difficulty,
            "criteria_type": self.criteria_type,
            "criteria_value": self.criteria_value,
        }


class UserBadge(Base):
    """
    Award fact: a user earned a badge. At most one row per (user, badge).

    Only `acknowledged` is ever updated after creation.
    """

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
        CheckConstraint("actual_value >= 0", name="ck_user_badges_actual_value"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    badge_id: Mapped[int] = mapped_column(ForeignKey("badges.id", ondelete="CASCADE"), index=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), index=True
    )
    awarded_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), index=True
    )
    awarded_by: Mapped[str] = mapped_column(String(20), default=AWARDED_BY_SYSTEM)
    criteria_met_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    actual_value: Mapped[int] = mapped_column(Integer, default=0)
    award_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="awards", foreign_keys=[user_id])
    badge: Mapped["Badge"] = relationship("Badge", back_populates="awards")

    def acknowledge(self) -> None:
        if not self.acknowledged:
            self.acknowledged = True
            self.acknowledged_at = datetime.now(timezone.utc)
