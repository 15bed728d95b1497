"""API test fixtures - the assembled app over in-memory services."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from auth.session import SessionManager
from auth.types import Session
from main import create_app
from utils.timezone import now_utc


@pytest.fixture
def mock_session_manager(test_user_id):
    now = now_utc()
    mock = Mock(spec=SessionManager)
    mock.validate_session.return_value = Session(
        token="test-token",
        user_id=test_user_id,
        created_at=now,
        expires_at=now + timedelta(hours=24),
        last_activity_at=now,
    )
    return mock


@pytest.fixture
def rate_limiter():
    """Replaced per test where throttling matters."""
    return None


@pytest.fixture
def app(services, mock_session_manager, rate_limiter):
    return create_app(services, mock_session_manager, rate_limiter)


@pytest.fixture
def client(app):
    """Client signed in as the primary test user."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", "test-token")
    return c


@pytest.fixture
def unauthed_client(app):
    """No session cookie: a visitor holding a public link."""
    return TestClient(app, raise_server_exceptions=False)
