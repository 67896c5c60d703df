"""
Pytest fixtures for Contribution Badges tests.

Every test gets a fresh in-memory SQLite database behind the global
DatabaseManager, so SAVEPOINT handling matches what the services rely on.
"""

import pytest
from factories import add_member, create_default_badges, create_repository, create_user

from badge_core.constants import ROLE_OWNER
from badge_core.db import db


@pytest.fixture(scope="function")
def test_db():
    """Initialize the global db object against a fresh in-memory database."""
    db.reset()
    db.initialize("sqlite://")
    db.create_all_tables()
    yield db
    db.reset()


@pytest.fixture
def test_session(test_db):
    session = test_db.get_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def sample_snapshot():
    """Repository detail as returned by GET /repositories/{id}."""
    return {
        "id": 9001,
        "name": "widgets",
        "full_name": "octo/widgets",
        "owner": {"login": "octo", "id": 1},
        "description": "Widget toolkit",
        "language": "Python",
        "private": False,
        "html_url": "https://github.com/octo/widgets",
        "clone_url": "https://github.com/octo/widgets.git",
        "default_branch": "main",
        "stargazers_count": 42,
        "forks_count": 7,
        "topics": ["widgets", "python"],
    }


@pytest.fixture
def sample_pull_request_payload():
    """pull_request webhook body for a merged PR by `alice` in octo/widgets."""
    return {
        "action": "closed",
        "number": 12,
        "pull_request": {
            "id": 555001,
            "number": 12,
            "title": "Add sprocket support",
            "state": "closed",
            "user": {"login": "alice", "id": 2},
            "merged": True,
            "merged_at": "2026-10-01T12:00:00Z",
            "closed_at": "2026-10-01T12:00:00Z",
            "created_at": "2026-09-28T09:30:00Z",
            "updated_at": "2026-10-01T12:00:00Z",
            "base": {"ref": "main"},
            "head": {"ref": "sprockets"},
            "commits": 3,
            "changed_files": 4,
            "additions": 120,
            "deletions": 8,
            "labels": [{"name": "enhancement"}],
            "html_url": "https://github.com/octo/widgets/pull/12",
        },
        "repository": {
            "id": 9001,
            "name": "widgets",
            "full_name": "octo/widgets",
            "private": False,
            "owner": {"login": "octo", "id": 1},
        },
        "sender": {"login": "alice", "id": 2},
    }


@pytest.fixture
def owner(test_session):
    return create_user(test_session, "octo")


@pytest.fixture
def contributor(test_session):
    return create_user(test_session, "alice")


@pytest.fixture
def repository(test_session, owner):
    repository = create_repository(test_session, owner)
    add_member(test_session, owner, repository, ROLE_OWNER)
    return repository


@pytest.fixture
def repository_with_defaults(test_session, repository):
    create_default_badges(test_session, repository)
    test_session.commit()
    return repository
