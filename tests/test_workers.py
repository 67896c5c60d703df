"""
Tests for Celery tasks and the beat schedule.

Tasks are called directly (no broker). The module-level `db` of each task
module is swapped for one that hands out the test session.
"""

from contextlib import contextmanager
from unittest.mock import patch

import pytest
from celery.schedules import crontab
from factories import create_pull_request
from sqlalchemy.exc import OperationalError

from badge_core.api import github_api
from badge_core.config import get_settings
from badge_core.exceptions import UpstreamFetchError
from badge_core.models import UserBadge
from workers.schedules import get_beat_schedule
from workers.tasks.awarding import award_all_repositories, award_repository
from workers.tasks.sync import sync_repository


class _SessionSource:
    def __init__(self, session):
        self._session = session

    @contextmanager
    def session(self):
        try:
            yield self._session
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise


@pytest.fixture
def task_db(test_session):
    source = _SessionSource(test_session)
    with patch("workers.tasks.awarding.db", source), patch("workers.tasks.sync.db", source):
        yield source


class TestBeatSchedule:
    def test_nightly_award_entry(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "batch_award_hour", 4)

        entry = get_beat_schedule()["award-all-repositories-nightly"]

        assert entry["task"] == "workers.tasks.awarding.award_all_repositories"
        assert entry["schedule"] == crontab(hour=4, minute=0)
        assert entry["options"]["queue"] == "awarding"


class TestAwardRepositoryTask:
    def test_awards_contributors(self, task_db, test_session, repository_with_defaults, contributor):
        create_pull_request(test_session, repository_with_defaults, contributor)
        test_session.commit()

        summary = award_repository(repository_with_defaults.id)

        assert summary["success"] is True
        assert summary["awards_given"] == 1
        award = test_session.query(UserBadge).one()
        assert award.user_id == contributor.id
        assert award.awarded_by == "system"

    def test_missing_repository(self, task_db):
        result = award_repository(424242)

        assert result == {"success": False, "repository_id": 424242, "error": "Repository not found"}

    def test_storage_failure_is_retried(self, task_db, repository_with_defaults):
        failure = OperationalError("SELECT 1", {}, Exception("database is locked"))
        with patch("workers.tasks.awarding.BadgeAwardingEngine.award_for_repository", side_effect=failure):
            # Called directly, Task.retry re-raises the original error
            with pytest.raises(OperationalError):
                award_repository(repository_with_defaults.id)


class TestAwardAllRepositoriesTask:
    def test_fans_out_one_task_per_repository(self, task_db, repository):
        with patch("workers.tasks.awarding.group") as mock_group:
            result = award_all_repositories(force_recheck=True)

        assert result == {"queued": 1, "repository_ids": [repository.id]}
        signatures = list(mock_group.call_args.args[0])
        assert [tuple(sig.args) for sig in signatures] == [(repository.id, True)]
        mock_group.return_value.apply_async.assert_called_once()

    def test_nothing_to_queue(self, task_db):
        with patch("workers.tasks.awarding.group") as mock_group:
            result = award_all_repositories()

        assert result == {"queued": 0, "repository_ids": []}
        mock_group.assert_not_called()


class TestSyncRepositoryTask:
    def test_refreshes_snapshot(self, task_db, repository, sample_snapshot):
        sample_snapshot["stargazers_count"] = 99
        with patch.object(github_api, "fetch_repository", return_value=sample_snapshot):
            result = sync_repository(repository.id)

        assert result["success"] is True
        assert result["repository"]["stargazers_count"] == 99

    def test_missing_repository_not_retried(self, task_db):
        result = sync_repository(424242)

        assert result["success"] is False
        assert result["repository_id"] == 424242

    def test_upstream_failure_is_retried(self, task_db, repository):
        failure = UpstreamFetchError("GitHub API returned 502", upstream_status=502)
        with patch.object(github_api, "fetch_repository", side_effect=failure):
            with pytest.raises(UpstreamFetchError):
                sync_repository(repository.id)
