"""
Tests for webhook ingestion: authentication, classification, persistence
and dispatch.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from factories import create_pull_request

from badge_core.exceptions import AuthenticationFailure, InvalidPayloadError, NotFoundError
from badge_core.models import PullRequest, UserBadge, WebhookEvent
from badge_core.repositories import PullRequestRepository
from badge_core.security import compute_signature
from badge_core.services import AwardResult, BadgeAwardingEngine, ContributorStatistics, WebhookGateway

SECRET = "s3cr3t"


def _deliver(gateway, payload, event_type="pull_request", delivery_id="delivery-1", secret=SECRET, body=None):
    body = body if body is not None else json.dumps(payload).encode()
    return gateway.handle(body, compute_signature(body, secret), event_type, delivery_id)


@pytest.fixture
def mock_engine():
    engine = MagicMock(spec=BadgeAwardingEngine)
    engine.award_for_user.return_value = AwardResult(
        user_id=0, repository_id=0, statistics=ContributorStatistics()
    )
    return engine


class TestAuthentication:
    def test_invalid_signature_rejected_without_side_effects(self, test_session, sample_pull_request_payload):
        gateway = WebhookGateway(test_session, secret=SECRET)
        body = json.dumps(sample_pull_request_payload).encode()

        with pytest.raises(AuthenticationFailure):
            gateway.handle(body, "sha256=" + "0" * 64, "pull_request", "delivery-1")

        assert test_session.query(WebhookEvent).count() == 0

    def test_missing_signature_rejected(self, test_session):
        with pytest.raises(AuthenticationFailure):
            WebhookGateway(test_session, secret=SECRET).handle(b"{}", None, "push", "delivery-1")

    def test_no_secret_configured_rejects_everything(self, test_session):
        body = b"{}"
        with pytest.raises(AuthenticationFailure):
            WebhookGateway(test_session, secret="").handle(body, compute_signature(body, "anything"), "push", "d")

    def test_signature_checked_over_raw_bytes(self, test_session):
        """Re-serializing the JSON would change the bytes; only the exact body verifies."""
        gateway = WebhookGateway(test_session, secret=SECRET)
        body = b'{"zen":  "Keep it logically awesome."}'
        reserialized = json.dumps(json.loads(body)).encode()

        with pytest.raises(AuthenticationFailure):
            gateway.handle(body, compute_signature(reserialized, SECRET), "ping", "delivery-1")


class TestPayloadValidation:
    def test_invalid_json(self, test_session):
        with pytest.raises(InvalidPayloadError):
            _deliver(WebhookGateway(test_session, secret=SECRET), None, body=b"{not json")

    def test_json_must_be_object(self, test_session):
        with pytest.raises(InvalidPayloadError):
            _deliver(WebhookGateway(test_session, secret=SECRET), None, body=b"[1, 2, 3]")

    def test_missing_delivery_id(self, test_session):
        with pytest.raises(InvalidPayloadError):
            _deliver(WebhookGateway(test_session, secret=SECRET), {"zen": "hi"}, delivery_id=None)


class TestPersistence:
    def test_duplicate_delivery_dispatches_once(
        self, test_session, repository, contributor, sample_pull_request_payload, mock_engine
    ):
        gateway = WebhookGateway(test_session, secret=SECRET, engine=mock_engine)

        first = _deliver(gateway, sample_pull_request_payload)
        second = _deliver(gateway, sample_pull_request_payload)

        assert first.to_dict()["status"] == "ok"
        assert second.to_dict()["status"] == "duplicate"
        assert mock_engine.award_for_user.call_count == 1
        assert test_session.query(WebhookEvent).count() == 1

    def test_event_metadata_recorded(self, test_session, owner, sample_pull_request_payload):
        outcome = _deliver(WebhookGateway(test_session, secret=SECRET), sample_pull_request_payload)

        event = test_session.query(WebhookEvent).one()
        assert event.id == outcome.event_id
        assert event.event_type == "pull_request"
        assert event.action == "closed"
        assert event.repository_full_name == "octo/widgets"
        assert event.repository_owner == "octo"
        assert event.sender_login == "alice"
        assert event.user_id == owner.id
        assert event.payload == sample_pull_request_payload
        assert event.processed_at is not None

    def test_unknown_event_type_recorded(self, test_session):
        outcome = _deliver(
            WebhookGateway(test_session, secret=SECRET), {"pages": [{"title": "Home"}]}, event_type="gollum"
        )

        assert outcome.to_dict()["status"] == "ok"
        assert test_session.query(WebhookEvent).one().event_type == "gollum"

    def test_schema_mismatch_still_recorded(self, test_session, mock_engine):
        gateway = WebhookGateway(test_session, secret=SECRET, engine=mock_engine)

        outcome = _deliver(gateway, {"action": "opened"}, event_type="pull_request")

        assert outcome.event_id is not None
        mock_engine.award_for_user.assert_not_called()


class TestDispatch:
    def test_merged_pull_request_awards_badge(
        self, test_session, repository_with_defaults, contributor, sample_pull_request_payload
    ):
        outcome = _deliver(WebhookGateway(test_session, secret=SECRET), sample_pull_request_payload)

        assert outcome.awards_given == 1
        ledger = test_session.query(PullRequest).one()
        assert ledger.user_id == contributor.id
        assert ledger.merged is True
        assert ledger.commit_count == 3
        assert ledger.labels == ["enhancement"]
        award = test_session.query(UserBadge).one()
        assert award.user_id == contributor.id
        assert award.awarded_by == "webhook"
        assert award.award_metadata["delivery_id"] == "delivery-1"
        assert award.award_metadata["pr_number"] == 12
        assert award.award_metadata["real_time"] is True

    def test_pull_request_update_is_idempotent(
        self, test_session, repository_with_defaults, contributor, sample_pull_request_payload
    ):
        gateway = WebhookGateway(test_session, secret=SECRET)
        _deliver(gateway, sample_pull_request_payload, delivery_id="delivery-1")
        sample_pull_request_payload["action"] = "edited"
        outcome = _deliver(gateway, sample_pull_request_payload, delivery_id="delivery-2")

        assert outcome.awards_given == 0
        assert test_session.query(PullRequest).count() == 1
        assert test_session.query(UserBadge).count() == 1

    def test_racing_insert_updates_existing_ledger_row(
        self, test_session, repository_with_defaults, contributor, sample_pull_request_payload
    ):
        create_pull_request(
            test_session, repository_with_defaults, contributor, merged=False, state="open", github_pr_id=555001
        )
        lookup = PullRequestRepository.get_by_github_id
        calls = []

        def miss_first_lookup(self, repository_id, github_pr_id):
            calls.append(github_pr_id)
            if len(calls) == 1:
                return None
            return lookup(self, repository_id, github_pr_id)

        with patch.object(PullRequestRepository, "get_by_github_id", miss_first_lookup):
            outcome = _deliver(WebhookGateway(test_session, secret=SECRET), sample_pull_request_payload)

        assert outcome.handler_error is None
        assert outcome.awards_given == 1
        ledger = test_session.query(PullRequest).one()
        assert ledger.merged is True
        assert ledger.commit_count == 3
        assert len(calls) == 2

    def test_unknown_author_awards_nothing(self, test_session, repository_with_defaults, sample_pull_request_payload, mock_engine):
        sample_pull_request_payload["pull_request"]["user"]["login"] = "mallory"

        outcome = _deliver(WebhookGateway(test_session, secret=SECRET, engine=mock_engine), sample_pull_request_payload)

        assert outcome.awards_given == 0
        mock_engine.award_for_user.assert_not_called()
        assert test_session.query(PullRequest).count() == 0

    def test_repository_not_imported(self, test_session, contributor, sample_pull_request_payload, mock_engine):
        outcome = _deliver(WebhookGateway(test_session, secret=SECRET, engine=mock_engine), sample_pull_request_payload)

        assert outcome.awards_given == 0
        mock_engine.award_for_user.assert_not_called()

    def test_handler_failure_still_acknowledged(
        self, test_session, repository_with_defaults, contributor, sample_pull_request_payload, mock_engine
    ):
        mock_engine.award_for_user.side_effect = RuntimeError("engine exploded")

        outcome = _deliver(WebhookGateway(test_session, secret=SECRET, engine=mock_engine), sample_pull_request_payload)

        assert outcome.to_dict()["status"] == "ok"
        assert outcome.handler_error == "engine exploded"
        assert test_session.query(WebhookEvent).one().processed_at is not None

    def test_push_event_logged_only(self, test_session, repository, mock_engine):
        payload = {
            "ref": "refs/heads/main",
            "commits": [{"id": "abc123", "message": "Fix typo"}],
            "repository": {
                "id": 9001,
                "name": "widgets",
                "full_name": "octo/widgets",
                "owner": {"login": "octo"},
            },
            "sender": {"login": "octo"},
        }

        outcome = _deliver(WebhookGateway(test_session, secret=SECRET, engine=mock_engine), payload, event_type="push")

        assert outcome.awards_given == 0
        mock_engine.award_for_user.assert_not_called()


class TestEventHistory:
    def test_list_and_get_user_events(self, test_session, owner, contributor, sample_pull_request_payload):
        gateway = WebhookGateway(test_session, secret=SECRET)
        outcome = _deliver(gateway, sample_pull_request_payload)

        listing = gateway.list_user_events(owner)
        assert listing["total"] == 1
        assert listing["events"][0]["delivery_id"] == "delivery-1"
        assert "payload" not in listing["events"][0]

        detail = gateway.get_event(owner, outcome.event_id)
        assert detail["payload"]["number"] == 12

        with pytest.raises(NotFoundError):
            gateway.get_event(contributor, outcome.event_id)
