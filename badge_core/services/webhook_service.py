"""
Webhook ingestion gateway.

received -> signature verified -> classified -> persisted -> dispatched

Nothing in the body is parsed until the HMAC check over the raw bytes has
passed. Once the delivery is recorded the provider gets a success response,
whatever happens downstream.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from badge_core.config import get_settings
from badge_core.constants import AWARDED_BY_WEBHOOK
from badge_core.events import (
    CommitCommentEvent,
    CreateEvent,
    DeleteEvent,
    ForkEvent,
    GenericEvent,
    IssuesEvent,
    PullRequestEvent,
    PushEvent,
    ReleaseEvent,
    WebhookPayload,
    parse_event,
)
from badge_core.exceptions import AuthenticationFailure, InvalidPayloadError, NotFoundError
from badge_core.logging import LogContext, get_logger
from badge_core.models import User, WebhookEvent
from badge_core.repositories import (
    PullRequestRepository,
    RepoRepository,
    UserRepository,
    WebhookEventRepository,
)
from badge_core.security.signatures import verify_signature

from .awarding import AwardTrigger, BadgeAwardingEngine

logger = get_logger("services.webhook")


@dataclass
class WebhookOutcome:
    delivery_id: str
    event_type: str
    duplicate: bool = False
    event_id: int | None = None
    awards_given: int = 0
    handler_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "duplicate" if self.duplicate else "ok",
            "delivery_id": self.delivery_id,
            "event_type": self.event_type,
            "event_id": self.event_id,
            "awards_given": self.awards_given,
        }


class WebhookGateway:
    """Authenticates, records and dispatches GitHub webhook deliveries."""

    def __init__(
        self,
        session: Session,
        secret: str | None = None,
        engine: BadgeAwardingEngine | None = None,
    ):
        self.session = session
        self.secret = secret if secret is not None else get_settings().webhook_secret
        self._engine = engine
        self.events = WebhookEventRepository(session)
        self.users = UserRepository(session)
        self.repositories = RepoRepository(session)
        self._handlers: dict[str, Callable[[Any, WebhookEvent], int]] = {
            "pull_request": self._handle_pull_request,
            "push": self._handle_push,
            "issues": self._handle_issues,
            "release": self._handle_release,
            "star": self._handle_activity,
            "watch": self._handle_activity,
            "fork": self._handle_fork,
            "create": self._handle_ref,
            "delete": self._handle_ref,
            "commit_comment": self._handle_commit_comment,
        }

    @property
    def engine(self) -> BadgeAwardingEngine:
        if self._engine is None:
            self._engine = BadgeAwardingEngine(self.session)
        return self._engine

    def handle(
        self,
        body: bytes,
        signature: str | None,
        event_type: str | None,
        delivery_id: str | None,
    ) -> WebhookOutcome:
        """
        Process one delivery.

        Raises:
            AuthenticationFailure: signature missing/invalid or no secret configured.
            InvalidPayloadError: body is not a JSON object, or delivery id missing.
        """
        if not verify_signature(body, signature, self.secret):
            logger.warning("webhook_signature_invalid", event_type=event_type, delivery_id=delivery_id)
            raise AuthenticationFailure("Invalid webhook signature")

        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidPayloadError("Invalid JSON") from exc
        if not isinstance(payload, dict):
            raise InvalidPayloadError("Webhook payload must be a JSON object")
        if not delivery_id:
            raise InvalidPayloadError("Missing delivery id")

        event_type = event_type or "unknown"
        event = parse_event(event_type, payload)

        with LogContext(delivery_id=delivery_id, event_type=event_type):
            record = self._record(delivery_id, event_type, event, payload)
            outcome = WebhookOutcome(delivery_id=delivery_id, event_type=event_type)
            if record is None:
                outcome.duplicate = True
                return outcome

            # Durable before any downstream work
            self.session.commit()
            outcome.event_id = record.id

            handler = self._handlers.get(event_type, self._handle_generic)
            if isinstance(event, GenericEvent):
                handler = self._handle_generic

            try:
                with self.session.begin_nested():
                    outcome.awards_given = handler(event, record)
            except Exception as exc:
                logger.exception("webhook_handler_failed", error=str(exc))
                outcome.handler_error = str(exc)

            self.events.mark_processed(record)
            self.session.commit()
            logger.info("webhook_processed", awards_given=outcome.awards_given)
            return outcome

    def list_user_events(self, user: User, limit: int = 20, offset: int = 0) -> dict[str, Any]:
        events, total = self.events.list_for_user(user.id, limit=limit, offset=offset)
        return {
            "events": [event.to_dict() for event in events],
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    def get_event(self, user: User, event_id: int) -> dict[str, Any]:
        event = self.events.get_for_user(event_id, user.id)
        if event is None:
            raise NotFoundError(f"Webhook event {event_id} not found")
        return event.to_dict(include_payload=True)

    # =========================================================================
    # Persistence
    # =========================================================================

    def _record(
        self, delivery_id: str, event_type: str, event: WebhookPayload, payload: dict[str, Any]
    ) -> WebhookEvent | None:
        repository = event.repository
        sender = event.sender
        owner_login = repository.owner.login if repository else None
        user = self.users.resolve_first(owner_login, sender.login if sender else None)

        return self.events.record(
            delivery_id,
            event_type,
            payload,
            action=event.action,
            repository_full_name=repository.full_name if repository else None,
            repository_owner=owner_login,
            repository_private=repository.private if repository else None,
            sender_login=sender.login if sender else None,
            sender_id=sender.id if sender else None,
            user_id=user.id if user else None,
        )

    # =========================================================================
    # Handlers. Each returns the number of badges awarded.
    # =========================================================================

    def _handle_pull_request(self, event: PullRequestEvent, record: WebhookEvent) -> int:
        repository = None
        if event.repository:
            repository = self.repositories.get_by_github_id(event.repository.id) or self.repositories.get_by_full_name(
                event.repository.full_name
            )
        if repository is None or not repository.active:
            logger.info("webhook_repository_not_imported")
            return 0

        pr = event.pull_request
        author = self.users.get_by_github_username(pr.user.login)
        if author is None:
            logger.info("webhook_author_unknown", login=pr.user.login)
            return 0

        PullRequestRepository(self.session).upsert(
            repository.id,
            author,
            pr.id,
            number=pr.number,
            title=pr.title[:512],
            state="merged" if pr.is_merged else pr.state,
            merged=pr.is_merged,
            merged_at=pr.merged_at,
            closed_at=pr.closed_at,
            github_created_at=pr.created_at,
            github_updated_at=pr.updated_at,
            base_branch=pr.base.ref if pr.base else None,
            head_branch=pr.head.ref if pr.head else None,
            commit_count=pr.commits,
            changed_files=pr.changed_files,
            additions=pr.additions,
            deletions=pr.deletions,
            labels=[label.name for label in pr.labels],
            url=pr.html_url,
        )

        trigger = AwardTrigger(
            kind=AWARDED_BY_WEBHOOK,
            event="pull_request",
            metadata={
                "delivery_id": record.delivery_id,
                "pr_number": pr.number,
                "action": event.action,
                "real_time": True,
            },
        )
        result = self.engine.award_for_user(repository, author, trigger)
        if result.upstream_error:
            logger.warning("webhook_award_upstream_failed", error=result.upstream_error)
        return result.awards_given

    def _handle_push(self, event: PushEvent, record: WebhookEvent) -> int:
        logger.info(
            "webhook_push",
            repository=record.repository_full_name,
            ref=event.ref,
            commits=len(event.commits),
        )
        return 0

    def _handle_issues(self, event: IssuesEvent, record: WebhookEvent) -> int:
        logger.info("webhook_issue", repository=record.repository_full_name, action=event.action, number=event.issue.number)
        return 0

    def _handle_release(self, event: ReleaseEvent, record: WebhookEvent) -> int:
        logger.info(
            "webhook_release",
            repository=record.repository_full_name,
            action=event.action,
            tag=event.release.tag_name,
        )
        return 0

    def _handle_fork(self, event: ForkEvent, record: WebhookEvent) -> int:
        logger.info("webhook_fork", repository=record.repository_full_name, forkee=event.forkee.full_name)
        return 0

    def _handle_ref(self, event: CreateEvent | DeleteEvent, record: WebhookEvent) -> int:
        logger.info(
            "webhook_ref",
            repository=record.repository_full_name,
            event_type=record.event_type,
            ref=event.ref,
            ref_type=event.ref_type,
        )
        return 0

    def _handle_commit_comment(self, event: CommitCommentEvent, record: WebhookEvent) -> int:
        logger.info("webhook_commit_comment", repository=record.repository_full_name, commit=event.comment.commit_id)
        return 0

    def _handle_activity(self, event: WebhookPayload, record: WebhookEvent) -> int:
        logger.info(
            "webhook_activity",
            repository=record.repository_full_name,
            event_type=record.event_type,
            sender=record.sender_login,
        )
        return 0

    def _handle_generic(self, event: GenericEvent, record: WebhookEvent) -> int:
        logger.info(
            "webhook_unhandled_event",
            repository=record.repository_full_name,
            sender=record.sender_login,
            payload_keys=sorted(record.payload.keys()),
        )
        return 0
