import os
import sys
from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.append(PROJECT_ROOT)

from backend.app.auth.dependencies import get_current_user  # noqa: E402
from backend.app.database import get_db  # noqa: E402
from backend.app.main import create_app  # noqa: E402



@pytest.fixture
def app(test_session) -> Iterator[FastAPI]:
    """
    App wired to the test session.

    The in-memory database has a single shared connection, so requests
    reuse the fixture session rather than opening their own.
    """
    app = create_app()

    def override_get_db() -> Iterator[Session]:
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    # No context manager: startup hooks would initialize the global database
    return TestClient(app)


@pytest.fixture
def login(app):
    """Authenticate subsequent requests as the given user."""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user

    return _login
