"""GitHub identities known to the badge engine."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .badge import UserBadge
    from .repository import UserRepositoryMembership


class User(Base):
    """
    A GitHub account. Rows are written by the sign-in flow; the badge
    engine reads them and matches webhook and API logins against
    `github_username`. `github_access_token` is Fernet ciphertext when
    TOKEN_ENCRYPTION_KEY is set.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    github_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    github_username: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    github_access_token: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    memberships: Mapped[list["UserRepositoryMembership"]] = relationship(
        "UserRepositoryMembership", back_populates="user"
    )
    awards: Mapped[list["UserBadge"]] = relationship(
        "UserBadge", back_populates="user", foreign_keys="UserBadge.user_id"
    )
