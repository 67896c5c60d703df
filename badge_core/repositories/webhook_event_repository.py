"""Webhook delivery audit log."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError

from badge_core.logging import get_logger
from badge_core.models import WebhookEvent

from .base import BaseRepository

logger = get_logger("repository.webhook_event")


class WebhookEventRepository(BaseRepository[WebhookEvent]):
    """Repository for WebhookEvent rows. One row per delivery id."""

    model = WebhookEvent

    def get_by_delivery_id(self, delivery_id: str) -> WebhookEvent | None:
        return self.session.query(WebhookEvent).filter(WebhookEvent.delivery_id == delivery_id).first()

    def record(self, delivery_id: str, event_type: str, payload: dict[str, Any], **fields: Any) -> WebhookEvent | None:
        """
        Insert the delivery inside a savepoint.

        Returns None when the delivery id was already recorded.
        """
        try:
            with self.session.begin_nested():
                event = WebhookEvent(
                    delivery_id=delivery_id,
                    event_type=event_type,
                    payload=payload,
                    **fields,
                )
                self.session.add(event)
        except IntegrityError:
            logger.info("webhook_duplicate_delivery", delivery_id=delivery_id, event_type=event_type)
            return None
        return event

    def mark_processed(self, event: WebhookEvent) -> None:
        event.processed_at = datetime.now(timezone.utc)
        self.session.flush()

    def list_for_user(self, user_id: int, limit: int = 20, offset: int = 0) -> tuple[list[WebhookEvent], int]:
        query = self.session.query(WebhookEvent).filter(WebhookEvent.user_id == user_id)
        total = query.count()
        events = (
            query.order_by(WebhookEvent.received_at.desc(), WebhookEvent.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return events, total

    def get_for_user(self, event_id: int, user_id: int) -> WebhookEvent | None:
        return (
            self.session.query(WebhookEvent)
            .filter(WebhookEvent.id == event_id, WebhookEvent.user_id == user_id)
            .first()
        )
