"""
GitHub webhook receiver and delivery history.

`POST /webhook` is unauthenticated at the HTTP layer; the HMAC signature
over the raw body is the only credential. The history endpoints live under
the versioned, JWT-protected API.
"""

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from badge_core.models import User
from badge_core.services import WebhookGateway

from ..auth.dependencies import get_current_user
from ..database import get_db
from ..schemas import WebhookResponse

SIGNATURE_HEADER = "X-Signature-256"
EVENT_TYPE_HEADER = "X-Event-Type"
DELIVERY_ID_HEADER = "X-Delivery-Id"

router = APIRouter(tags=["webhooks"])
events_router = APIRouter(prefix="/webhook", tags=["webhooks"])


async def get_raw_body(request: Request) -> bytes:
    """Exact request bytes; the signature is computed over these, not re-serialized JSON."""
    return await request.body()


@router.post("/webhook", response_model=WebhookResponse)
def receive_webhook(
    body: bytes = Depends(get_raw_body),
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
    event_type: str | None = Header(default=None, alias=EVENT_TYPE_HEADER),
    delivery_id: str | None = Header(default=None, alias=DELIVERY_ID_HEADER),
    db: Session = Depends(get_db),
):
    """
    Verify, record and dispatch one delivery.

    401 on a bad signature, 400 on an unparseable body or missing delivery
    id. Redeliveries answer 200 with status "duplicate" and do no work.
    """
    outcome = WebhookGateway(db).handle(body, signature, event_type, delivery_id)
    return outcome.to_dict()


@events_router.get("/events")
def list_webhook_events(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return WebhookGateway(db).list_user_events(current_user, limit=limit, offset=offset)


@events_router.get("/events/{event_id}")
def get_webhook_event(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return WebhookGateway(db).get_event(current_user, event_id)
