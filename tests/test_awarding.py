"""
Tests for the badge awarding engine.
"""

from unittest.mock import MagicMock, patch

import pytest
from factories import add_member, create_badge, create_pull_request, create_user

from badge_core.api import github_api
from badge_core.exceptions import NotFoundError, UpstreamFetchError
from badge_core.models import UserBadge
from badge_core.services import (
    AwardTrigger,
    BadgeAwardingEngine,
    ContributorStatistics,
    GitHubStatisticsProvider,
    LedgerStatisticsProvider,
    StatisticsProvider,
)


def _merge_prs(session, repository, user, n, commit_count=1):
    for _ in range(n):
        create_pull_request(session, repository, user, merged=True, commit_count=commit_count)


def _awarded_values(session, user):
    return sorted(
        award.badge.criteria_value
        for award in session.query(UserBadge).filter(UserBadge.user_id == user.id)
    )


class TestAwardForUser:
    def test_awards_every_reached_threshold(self, test_session, repository_with_defaults, contributor):
        _merge_prs(test_session, repository_with_defaults, contributor, 6)

        result = BadgeAwardingEngine(test_session).award_for_user(repository_with_defaults, contributor)

        assert result.awards_given == 2
        assert result.badges_checked == 4
        assert _awarded_values(test_session, contributor) == [1, 5]
        assert {a.actual_value for a in result.new_awards} == {6}

    def test_threshold_boundary(self, test_session, repository, contributor):
        create_badge(test_session, repository, 5)
        engine = BadgeAwardingEngine(test_session)

        _merge_prs(test_session, repository, contributor, 4)
        assert engine.award_for_user(repository, contributor).awards_given == 0

        _merge_prs(test_session, repository, contributor, 1)
        assert engine.award_for_user(repository, contributor).awards_given == 1

    def test_idempotent(self, test_session, repository_with_defaults, contributor):
        _merge_prs(test_session, repository_with_defaults, contributor, 5)
        engine = BadgeAwardingEngine(test_session)

        first = engine.award_for_user(repository_with_defaults, contributor)
        second = engine.award_for_user(repository_with_defaults, contributor)

        assert first.awards_given == 2
        assert second.awards_given == 0
        assert test_session.query(UserBadge).count() == 2

    def test_force_recheck_conflict_is_noop(self, test_session, repository_with_defaults, contributor):
        _merge_prs(test_session, repository_with_defaults, contributor, 1)
        engine = BadgeAwardingEngine(test_session)
        engine.award_for_user(repository_with_defaults, contributor)

        result = engine.award_for_user(repository_with_defaults, contributor, force_recheck=True)

        assert result.awards_given == 0
        assert result.already_awarded == 1
        assert result.errors == []
        assert test_session.query(UserBadge).count() == 1

    def test_no_activity_awards_nothing(self, test_session, repository_with_defaults, contributor):
        result = BadgeAwardingEngine(test_session).award_for_user(repository_with_defaults, contributor)

        assert result.awards_given == 0
        assert result.badges_checked == 0

    def test_commit_badge(self, test_session, repository_with_defaults, contributor):
        _merge_prs(test_session, repository_with_defaults, contributor, 2, commit_count=25)

        BadgeAwardingEngine(test_session).award_for_user(repository_with_defaults, contributor)

        assert _awarded_values(test_session, contributor) == [1, 50]

    def test_inactive_and_unsupported_badges_skipped(self, test_session, repository, contributor):
        create_badge(test_session, repository, 1, active=False)
        create_badge(test_session, repository, 1, criteria_type="stars")
        _merge_prs(test_session, repository, contributor, 3)

        result = BadgeAwardingEngine(test_session).award_for_user(repository, contributor)

        assert result.awards_given == 0
        assert result.badges_checked == 1

    def test_trigger_recorded_on_award(self, test_session, repository, contributor):
        create_badge(test_session, repository, 1)
        _merge_prs(test_session, repository, contributor, 1)
        trigger = AwardTrigger(kind="webhook", event="pull_request", metadata={"pr_number": 7})

        result = BadgeAwardingEngine(test_session).award_for_user(repository, contributor, trigger)

        award = result.new_awards[0]
        assert award.awarded_by == "webhook"
        assert award.award_metadata["triggering_event"] == "pull_request"
        assert award.award_metadata["pr_number"] == 7
        assert award.repository_id == repository.id

    def test_upstream_failure_awards_nothing(self, test_session, repository_with_defaults, contributor):
        provider = MagicMock(spec=StatisticsProvider)
        provider.get_statistics.side_effect = UpstreamFetchError("GitHub unavailable", upstream_status=502)

        result = BadgeAwardingEngine(test_session, provider).award_for_user(repository_with_defaults, contributor)

        assert result.awards_given == 0
        assert result.upstream_error == "GitHub unavailable"
        assert test_session.query(UserBadge).count() == 0


class TestAwardForRepository:
    def test_staggered_contributors(self, test_session, repository_with_defaults):
        """Contributors with 1, 5 and 20 merged PRs earn 1, 2 and 3 badges."""
        users = [create_user(test_session, name) for name in ("u1", "u5", "u20")]
        for user, merged in zip(users, (1, 5, 20)):
            _merge_prs(test_session, repository_with_defaults, user, merged)

        summary = BadgeAwardingEngine(test_session).award_for_repository(repository_with_defaults)

        assert summary["success"] is True
        assert summary["awards_given"] == 6
        assert summary["badges_checked"] == 4
        assert [_awarded_values(test_session, u) for u in users] == [[1], [1, 5], [1, 5, 20]]

    def test_second_run_awards_nothing(self, test_session, repository_with_defaults, contributor):
        _merge_prs(test_session, repository_with_defaults, contributor, 5)
        engine = BadgeAwardingEngine(test_session)

        engine.award_for_repository(repository_with_defaults)
        summary = engine.award_for_repository(repository_with_defaults, force_recheck=True)

        assert summary["awards_given"] == 0
        assert summary["errors"] == []

    def test_single_user(self, test_session, repository_with_defaults, contributor):
        other = create_user(test_session, "bob")
        _merge_prs(test_session, repository_with_defaults, contributor, 1)
        _merge_prs(test_session, repository_with_defaults, other, 1)

        summary = BadgeAwardingEngine(test_session).award_for_repository(
            repository_with_defaults, user_id=contributor.id
        )

        assert summary["awards_given"] == 1
        assert summary["new_awards"][0]["user_id"] == contributor.id

    def test_no_badges(self, test_session, repository, contributor):
        _merge_prs(test_session, repository, contributor, 3)

        summary = BadgeAwardingEngine(test_session).award_for_repository(repository)

        assert summary["message"] == "No active badges found for repository"
        assert summary["awards_given"] == 0

    def test_per_user_fetch_errors_reported(self, test_session, repository_with_defaults, contributor):
        class FailingForOne(LedgerStatisticsProvider):
            def get_repository_statistics(self, repository, user_ids=None):
                result = super().get_repository_statistics(repository, user_ids)
                result.contributors.pop(contributor.id, None)
                result.errors[contributor.id] = "rate limited"
                return result

        bob = create_user(test_session, "bob")
        _merge_prs(test_session, repository_with_defaults, contributor, 1)
        _merge_prs(test_session, repository_with_defaults, bob, 1)

        summary = BadgeAwardingEngine(test_session, FailingForOne(test_session)).award_for_repository(
            repository_with_defaults
        )

        assert summary["awards_given"] == 1
        assert summary["errors"] == [{"user_id": contributor.id, "badge_id": None, "error": "rate limited"}]

    def test_malformed_upstream_body_reported_per_user(self, test_session, repository_with_defaults, owner, contributor):
        add_member(test_session, contributor, repository_with_defaults)
        response = MagicMock(status_code=200, headers={})
        response.json.side_effect = ValueError("Expecting value")

        with patch.object(github_api.requests, "get", return_value=response):
            summary = BadgeAwardingEngine(
                test_session, GitHubStatisticsProvider(test_session)
            ).award_for_repository(repository_with_defaults)

        assert summary["awards_given"] == 0
        assert summary["contributors_checked"] == 0
        assert sorted(error["user_id"] for error in summary["errors"]) == sorted([owner.id, contributor.id])
        assert all("non-JSON" in error["error"] for error in summary["errors"])
        assert test_session.query(UserBadge).count() == 0


class TestCheckAndProgress:
    def test_check_and_award_requires_membership(self, test_session, repository_with_defaults, contributor):
        with pytest.raises(NotFoundError):
            BadgeAwardingEngine(test_session).check_and_award(contributor, repository_with_defaults)

    def test_check_and_award(self, test_session, repository_with_defaults, contributor):
        add_member(test_session, contributor, repository_with_defaults)
        _merge_prs(test_session, repository_with_defaults, contributor, 1)

        result = BadgeAwardingEngine(test_session).check_and_award(contributor, repository_with_defaults)

        assert [b["criteria_value"] for b in result["newly_awarded"]] == [1]
        assert result["user_role"] == "contributor"
        assert result["total_badges"] == 4
        assert result["awarded_badges"] == 1
        assert test_session.query(UserBadge).one().awarded_by == "manual"

    def test_badge_progress(self, test_session, repository_with_defaults, contributor):
        _merge_prs(test_session, repository_with_defaults, contributor, 2)
        engine = BadgeAwardingEngine(test_session)
        engine.award_for_user(repository_with_defaults, contributor)

        progress = engine.get_badge_progress(contributor, repository_with_defaults)

        by_value = {item["badge"]["criteria_value"]: item for item in progress["progress"]}
        assert by_value[1]["earned"] is True
        assert by_value[1]["progress"] == 100.0
        assert by_value[5]["earned"] is False
        assert by_value[5]["progress"] == 40.0
        assert by_value[5]["current_value"] == 2
        assert progress["earned_badges"] == 1
        assert progress["total_badges"] == 4

    def test_acknowledge_award(self, test_session, repository_with_defaults, contributor, owner):
        _merge_prs(test_session, repository_with_defaults, contributor, 1)
        engine = BadgeAwardingEngine(test_session)
        award = engine.award_for_user(repository_with_defaults, contributor).new_awards[0]

        with pytest.raises(NotFoundError):
            engine.acknowledge_award(owner, award.id)

        acknowledged = engine.acknowledge_award(contributor, award.id)
        assert acknowledged.acknowledged is True
        assert acknowledged.acknowledged_at is not None

    def test_repository_badge_stats(self, test_session, repository_with_defaults, contributor):
        _merge_prs(test_session, repository_with_defaults, contributor, 5)
        engine = BadgeAwardingEngine(test_session)
        engine.award_for_user(repository_with_defaults, contributor)

        stats = engine.get_repository_badge_stats(repository_with_defaults)

        assert stats["total_awards"] == 2
        assert stats["unique_recipients"] == 1
        assert stats["recent_awards"] == 2


def test_statistics_unchanged_between_runs(test_session, repository_with_defaults, contributor):
    _merge_prs(test_session, repository_with_defaults, contributor, 3)
    engine = BadgeAwardingEngine(test_session)

    first = engine.award_for_user(repository_with_defaults, contributor).statistics
    second = engine.award_for_user(repository_with_defaults, contributor).statistics

    assert isinstance(first, ContributorStatistics)
    assert first == second
