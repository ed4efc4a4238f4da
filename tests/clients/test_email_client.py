"""
Tests for EmailClient.

HTTP is mocked with the responses library; tests check the request the
client sends and how it reports failures.
"""

import json

import pytest
import requests
import responses

from clients.email_client import EmailClient, EmailClientError

BASE_URL = "https://email.example.com"


class TestEmailClientInit:
    """Fail fast on invalid config."""

    def test_init_with_valid_settings(self):
        client = EmailClient(
            base_url=BASE_URL,
            sender="newsletter@example.com",
            authorization_token="server-token",
        )
        assert client.timeout_seconds == 10.0

    @pytest.mark.parametrize("missing", ["base_url", "sender", "authorization_token"])
    def test_init_rejects_empty_setting(self, missing):
        settings = {
            "base_url": BASE_URL,
            "sender": "newsletter@example.com",
            "authorization_token": "server-token",
        }
        settings[missing] = ""

        with pytest.raises(ValueError, match=missing):
            EmailClient(**settings)

    def test_trailing_slash_stripped(self):
        client = EmailClient(
            base_url=f"{BASE_URL}/",
            sender="newsletter@example.com",
            authorization_token="server-token",
        )
        assert client.base_url == BASE_URL


class TestSendEmail:

    @pytest.fixture
    def client(self):
        return EmailClient(
            base_url=BASE_URL,
            sender="newsletter@example.com",
            authorization_token="server-token",
            timeout_seconds=2.0,
        )

    def send(self, client):
        client.send_email(
            recipient="subscriber@example.com",
            subject="Welcome!",
            html_body="<p>Hi</p>",
            text_body="Hi",
        )

    @responses.activate
    def test_posts_expected_payload(self, client):
        responses.add(responses.POST, f"{BASE_URL}/email", json={}, status=200)

        self.send(client)

        assert len(responses.calls) == 1
        request = responses.calls[0].request
        assert request.headers["X-Postmark-Server-Token"] == "server-token"
        assert json.loads(request.body) == {
            "From": "newsletter@example.com",
            "To": "subscriber@example.com",
            "Subject": "Welcome!",
            "HtmlBody": "<p>Hi</p>",
            "TextBody": "Hi",
        }

    @responses.activate
    @pytest.mark.parametrize("status", [400, 401, 422, 500, 503])
    def test_error_status_raises(self, client, status):
        responses.add(responses.POST, f"{BASE_URL}/email", status=status)

        with pytest.raises(EmailClientError, match=str(status)):
            self.send(client)

    @responses.activate
    def test_connection_error_raises(self, client):
        responses.add(
            responses.POST,
            f"{BASE_URL}/email",
            body=requests.exceptions.ConnectionError("refused"),
        )

        with pytest.raises(EmailClientError, match="Connection failed"):
            self.send(client)

    @responses.activate
    def test_timeout_raises(self, client):
        responses.add(
            responses.POST,
            f"{BASE_URL}/email",
            body=requests.exceptions.ReadTimeout("too slow"),
        )

        with pytest.raises(EmailClientError):
            self.send(client)
