"""
Webhook delivery audit log. Append-only, one row per delivery id.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class WebhookEvent(Base):
    """Verified inbound webhook delivery with its raw payload."""

    __tablename__ = "webhook_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    delivery_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    event_type: Mapped[str] = mapped_column(String(64), index=True)
    action: Mapped[Optional[str]] = mapped_column(String(64))
    repository_full_name: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    repository_owner: Mapped[Optional[str]] = mapped_column(String(255))
    repository_private: Mapped[Optional[bool]] = mapped_column(Boolean)
    sender_login: Mapped[Optional[str]] = mapped_column(String(255))
    sender_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    received_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), index=True
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def to_dict(self, include_payload: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "delivery_id": self.delivery_id,
            "event_type": self.event_type,
            "action": self.action,
            "repository": {
                "full_name": self.repository_full_name,
                "owner": self.repository_owner,
                "private": self.repository_private,
            },
            "sender": {"login": self.sender_login, "id": self.sender_id},
            "received_at": self.received_at.isoformat() if self.received_at else None,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }
        if include_payload:
            data["payload"] = self.payload
        return data
