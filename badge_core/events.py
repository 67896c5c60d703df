"""
Webhook payload models.

Known event types are validated into a strict per-type model through a
discriminated union on `event_type` (taken from the X-Event-Type header,
not the body). Anything else becomes a GenericEvent carrying the opaque
payload.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from badge_core.constants import WEBHOOK_EVENT_TYPES
from badge_core.logging import get_logger
from badge_core.schemas import AccountRef

logger = get_logger("webhooks.events")


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RepositoryRef(_Payload):
    id: int
    name: str
    full_name: str
    private: bool = False
    owner: AccountRef


class BranchRef(_Payload):
    ref: str


class LabelRef(_Payload):
    name: str


class PullRequestData(_Payload):
    id: int
    number: int
    title: str
    state: str
    user: AccountRef
    merged: bool = False
    merged_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    base: Optional[BranchRef] = None
    head: Optional[BranchRef] = None
    commits: int = 1
    changed_files: int = 0
    additions: int = 0
    deletions: int = 0
    labels: List[LabelRef] = Field(default_factory=list)
    html_url: Optional[str] = None

    @property
    def is_merged(self) -> bool:
        return self.merged or self.merged_at is not None


class CommitAuthor(_Payload):
    name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None


class PushCommit(_Payload):
    id: str
    message: str = ""
    author: Optional[CommitAuthor] = None


class IssueData(_Payload):
    number: int
    title: str


class ReleaseData(_Payload):
    tag_name: str
    name: Optional[str] = None


class CommitCommentData(_Payload):
    id: int
    commit_id: str
    body: str = ""


class WebhookPayload(_Payload):
    """Fields shared by every event type."""

    action: Optional[str] = None
    repository: Optional[RepositoryRef] = None
    sender: Optional[AccountRef] = None


class PullRequestEvent(WebhookPayload):
    event_type: Literal["pull_request"]
    action: str
    number: int
    pull_request: PullRequestData


class PushEvent(WebhookPayload):
    event_type: Literal["push"]
    ref: str
    commits: List[PushCommit] = Field(default_factory=list)


class IssuesEvent(WebhookPayload):
    event_type: Literal["issues"]
    action: str
    issue: IssueData


class ReleaseEvent(WebhookPayload):
    event_type: Literal["release"]
    action: str
    release: ReleaseData


class StarEvent(WebhookPayload):
    event_type: Literal["star"]


class WatchEvent(WebhookPayload):
    event_type: Literal["watch"]


class ForkEvent(WebhookPayload):
    event_type: Literal["fork"]
    forkee: RepositoryRef


class CreateEvent(WebhookPayload):
    event_type: Literal["create"]
    ref: Optional[str] = None
    ref_type: str


class DeleteEvent(WebhookPayload):
    event_type: Literal["delete"]
    ref: str
    ref_type: str


class CommitCommentEvent(WebhookPayload):
    event_type: Literal["commit_comment"]
    comment: CommitCommentData


class GenericEvent(WebhookPayload):
    """Unrecognized event type; the body is kept as-is."""

    event_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


KnownEvent = Annotated[
    Union[
        PullRequestEvent,
        PushEvent,
        IssuesEvent,
        ReleaseEvent,
        StarEvent,
        WatchEvent,
        ForkEvent,
        CreateEvent,
        DeleteEvent,
        CommitCommentEvent,
    ],
    Field(discriminator="event_type"),
]

_known_event_adapter = TypeAdapter(KnownEvent)


def parse_event(event_type: str, payload: Dict[str, Any]) -> WebhookPayload:
    """
    Classify a decoded webhook body.

    A known type whose body does not match its schema degrades to a
    GenericEvent so the delivery is still recorded.
    """
    if event_type in WEBHOOK_EVENT_TYPES:
        try:
            return _known_event_adapter.validate_python({**payload, "event_type": event_type})
        except ValidationError as exc:
            logger.warning(
                "webhook_payload_schema_mismatch",
                event_type=event_type,
                errors=exc.error_count(),
            )

    return _generic_event(event_type, payload)


def _generic_event(event_type: str, payload: Dict[str, Any]) -> GenericEvent:
    try:
        repository = RepositoryRef.model_validate(payload["repository"]) if payload.get("repository") else None
    except ValidationError:
        repository = None
    try:
        sender = AccountRef.model_validate(payload["sender"]) if payload.get("sender") else None
    except ValidationError:
        sender = None
    action = payload.get("action")
    return GenericEvent(
        event_type=event_type,
        action=action if isinstance(action, str) else None,
        repository=repository,
        sender=sender,
        payload=payload,
    )


__all__ = [
    "WebhookPayload",
    "RepositoryRef",
    "PullRequestData",
    "PullRequestEvent",
    "PushEvent",
    "IssuesEvent",
    "ReleaseEvent",
    "StarEvent",
    "WatchEvent",
    "ForkEvent",
    "CreateEvent",
    "DeleteEvent",
    "CommitCommentEvent",
    "GenericEvent",
    "parse_event",
]
