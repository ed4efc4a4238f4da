"""Tests for AdminSessionMiddleware - session enforcement under /admin/."""

from datetime import timedelta
from unittest.mock import Mock
from uuid import UUID

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from auth.security_middleware import AdminSessionMiddleware
from auth.session import SessionManager
from auth.types import Session
from auth.exceptions import SessionExpiredError
from utils.timezone import now_utc

USER_ID = UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture
def mock_session_manager():
    return Mock(spec=SessionManager)


@pytest.fixture
def client(mock_session_manager):
    """App with the middleware and one protected and one public route."""
    app = FastAPI()
    app.add_middleware(AdminSessionMiddleware, session_manager=mock_session_manager)

    @app.get("/admin/dashboard")
    async def protected(request: Request):
        return {"user_id": str(request.state.user_id)}

    @app.get("/login")
    async def public():
        return {"public": True}

    @app.get("/administrator")
    async def lookalike():
        return {"public": True}

    return TestClient(app, follow_redirects=False)


def make_session(token: str = "valid-token") -> Session:
    now = now_utc()
    return Session(
        token=token,
        user_id=USER_ID,
        created_at=now,
        expires_at=now + timedelta(hours=1),
        last_activity_at=now,
    )


class TestPublicPaths:

    def test_public_path_needs_no_cookie(self, client, mock_session_manager):
        response = client.get("/login")

        assert response.status_code == 200
        mock_session_manager.validate_session.assert_not_called()

    def test_prefix_match_is_on_path_segment(self, client):
        """/administrator is not under /admin/."""
        assert client.get("/administrator").status_code == 200


class TestProtectedPaths:

    def test_missing_cookie_redirects_to_login(self, client):
        response = client.get("/admin/dashboard")

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_dead_session_redirects_and_clears_cookie(self, client, mock_session_manager):
        mock_session_manager.validate_session.side_effect = SessionExpiredError("expired")
        client.cookies.set("session_token", "stale")

        response = client.get("/admin/dashboard")

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert "session_token" in response.headers.get("set-cookie", "")

    def test_live_session_sets_user_id(self, client, mock_session_manager):
        mock_session_manager.validate_session.return_value = make_session()
        client.cookies.set("session_token", "valid-token")

        response = client.get("/admin/dashboard")

        assert response.status_code == 200
        assert response.json() == {"user_id": str(USER_ID)}
        mock_session_manager.validate_session.assert_called_once_with("valid-token")


class TestWithSessionStore:
    """Middleware against a real SessionManager over the in-memory store."""

    @pytest.fixture
    def session_manager(self, valkey, auth_config):
        return SessionManager(valkey, auth_config)

    @pytest.fixture
    def store_client(self, session_manager):
        app = FastAPI()
        app.add_middleware(AdminSessionMiddleware, session_manager=session_manager)

        @app.get("/admin/dashboard")
        async def protected(request: Request):
            return {"user_id": str(request.state.user_id)}

        return TestClient(app, follow_redirects=False)

    def test_live_session_passes_user_id(self, store_client, session_manager):
        session = session_manager.create_session(USER_ID)
        store_client.cookies.set("session_token", session.token)

        response = store_client.get("/admin/dashboard")

        assert response.json() == {"user_id": str(USER_ID)}
        refreshed = session_manager.validate_session(session.token)
        assert refreshed.last_activity_at >= session.last_activity_at

    def test_revoked_session_redirects(self, store_client, session_manager):
        session = session_manager.create_session(USER_ID)
        session_manager.revoke_session(session.token)
        store_client.cookies.set("session_token", session.token)

        response = store_client.get("/admin/dashboard")

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_corrupt_session_redirects(self, store_client, valkey):
        valkey.set_json("session:broken", {"user_id": "not-a-uuid"})
        store_client.cookies.set("session_token", "broken")

        response = store_client.get("/admin/dashboard")

        assert response.status_code == 303
        assert "session:broken" not in valkey.data
