"""
HTTP tests for the webhook receiver and delivery history.
"""

import json

import pytest

from backend.app.config import get_settings
from backend.app.routers.webhooks import DELIVERY_ID_HEADER, EVENT_TYPE_HEADER, SIGNATURE_HEADER
from badge_core.models import WebhookEvent
from badge_core.security import compute_signature

API = f"{get_settings().api_prefix}/v1"
SECRET = "api-test-secret"


@pytest.fixture(autouse=True)
def webhook_secret(monkeypatch):
    monkeypatch.setattr(get_settings(), "webhook_secret", SECRET)


def _post(client, payload, event_type="pull_request", delivery_id="delivery-1", secret=SECRET, body=None):
    body = body if body is not None else json.dumps(payload).encode()
    headers = {
        SIGNATURE_HEADER: compute_signature(body, secret),
        EVENT_TYPE_HEADER: event_type,
        "Content-Type": "application/json",
    }
    if delivery_id:
        headers[DELIVERY_ID_HEADER] = delivery_id
    return client.post("/webhook", content=body, headers=headers)


def test_bad_signature_returns_401(client, test_session, sample_pull_request_payload):
    response = _post(client, sample_pull_request_payload, secret="wrong")

    assert response.status_code == 401
    assert test_session.query(WebhookEvent).count() == 0


def test_missing_signature_returns_401(client):
    response = client.post("/webhook", content=b"{}", headers={EVENT_TYPE_HEADER: "ping"})

    assert response.status_code == 401


def test_invalid_json_returns_400(client):
    response = _post(client, None, body=b"not json")

    assert response.status_code == 400


def test_missing_delivery_id_returns_400(client):
    response = _post(client, {"zen": "hi"}, delivery_id=None)

    assert response.status_code == 400


def test_pull_request_delivery_awards(
    client, test_session, repository_with_defaults, contributor, sample_pull_request_payload
):
    response = _post(client, sample_pull_request_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["delivery_id"] == "delivery-1"
    assert data["event_type"] == "pull_request"
    assert data["awards_given"] == 1


def test_redelivery_is_duplicate(client, test_session, repository_with_defaults, contributor, sample_pull_request_payload):
    _post(client, sample_pull_request_payload)
    response = _post(client, sample_pull_request_payload)

    assert response.status_code == 200
    assert response.json()["status"] == "duplicate"
    assert response.json()["awards_given"] == 0
    assert test_session.query(WebhookEvent).count() == 1


def test_event_history(client, login, owner, contributor, sample_pull_request_payload):
    event_id = _post(client, sample_pull_request_payload).json()["event_id"]

    login(owner)
    listing = client.get(f"{API}/webhook/events")
    assert listing.status_code == 200
    assert listing.json()["total"] == 1

    detail = client.get(f"{API}/webhook/events/{event_id}")
    assert detail.status_code == 200
    assert detail.json()["payload"]["number"] == 12

    login(contributor)
    assert client.get(f"{API}/webhook/events/{event_id}").status_code == 404


def test_event_history_requires_auth(client):
    assert client.get(f"{API}/webhook/events").status_code == 401
