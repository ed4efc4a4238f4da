"""Tests for one-shot flash messages in a signed cookie."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from itsdangerous import URLSafeTimedSerializer

from api.flash import FlashMessages

PAGE = "<html><body>{flash}<p>page</p></body></html>"
COOKIE = FlashMessages.COOKIE_NAME


@pytest.fixture
def flash(secret_key):
    return FlashMessages(secret_key)


@pytest.fixture
def client(flash):
    app = FastAPI()

    @app.get("/set")
    async def set_message(message: str):
        return flash.redirect("/page", message)

    @app.get("/page")
    async def page(request: Request):
        return flash.render(request, PAGE)

    return TestClient(app, follow_redirects=False)


class TestFlash:

    def test_no_message_renders_nothing(self, client):
        response = client.get("/page")

        assert response.text == "<html><body><p>page</p></body></html>"

    def test_message_shown_once(self, client):
        response = client.get("/set", params={"message": "Your password has been changed."})

        first = client.get("/page")
        second = client.get("/page")

        assert response.status_code == 303
        assert response.headers["location"] == "/page"
        assert "<p><i>Your password has been changed.</i></p>" in first.text
        assert "changed" not in second.text

    def test_message_is_html_escaped(self, client):
        client.get("/set", params={"message": "<script>alert(1)</script>"})

        response = client.get("/page")

        assert "<script>" not in response.text
        assert "&lt;script&gt;" in response.text

    def test_cookie_is_http_only(self, client):
        response = client.get("/set", params={"message": "hi"})

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{COOKIE}=")
        assert "HttpOnly" in set_cookie


class TestSignature:

    def test_forged_cookie_is_ignored_and_cleared(self, client):
        client.cookies.set(COOKIE, "account-locked-call-555-0100")

        response = client.get("/page")

        assert "locked" not in response.text
        assert f"{COOKIE}=" in response.headers.get("set-cookie", "")

    def test_cookie_signed_with_another_key_is_ignored(self, client):
        foreign = URLSafeTimedSerializer("some-other-key", salt=FlashMessages.SALT)
        client.cookies.set(COOKIE, foreign.dumps("Forged notice"))

        assert "Forged" not in client.get("/page").text

    def test_stale_message_is_ignored(self, client):
        client.get("/set", params={"message": "Long ago"})

        with patch.object(FlashMessages, "MAX_AGE_SECONDS", -1):
            response = client.get("/page")

        assert "Long ago" not in response.text

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            FlashMessages("")
