"""Shared test fixtures for the newsletter service test suite.

The suite runs without Postgres, Valkey or Vault: stores are replaced by
in-memory fakes with the same method surface as the real classes, and
the email API by Mock(spec=EmailClient).
"""

import json
from contextlib import contextmanager
from unittest.mock import Mock
from uuid import UUID, uuid4

import psycopg2
import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from auth.config import AuthConfig
from auth.passwords import HashingPool, PasswordHasher
from auth.security_logger import SecurityLogger
from auth.types import StoredCredential
from clients.email_client import EmailClient
from newsletter.config import NewsletterConfig
from newsletter.domain import Subscriber, SubscriberStatus
from utils.timezone import now_utc


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

ADMIN_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "everythinghastostartsomewhere"


# =============================================================================
# IN-MEMORY FAKES
# =============================================================================


class FakeValkey:
    """Dict-backed stand-in for ValkeyClient. TTLs are recorded, not enforced."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.closed = False

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, expire_seconds=None):
        self.data[key] = value
        self.ttls[key] = expire_seconds

    def delete(self, key):
        self.ttls.pop(key, None)
        return self.data.pop(key, None) is not None

    def set_json(self, key, value, expire_seconds=None):
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key):
        value = self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def close(self):
        self.closed = True


class FakeAuthDatabase:
    """In-memory credential store with the AuthDatabase surface."""

    def __init__(self):
        self.users: dict[str, tuple[UUID, str]] = {}
        self.fail_lookups = False
        self.lookups: list[str] = []

    def add_user(self, username: str, user_id: UUID, password_hash: str) -> None:
        self.users[username] = (user_id, password_hash)

    def get_stored_credentials(self, username):
        self.lookups.append(username)
        if self.fail_lookups:
            raise psycopg2.OperationalError("connection refused")
        if username not in self.users:
            return None
        user_id, password_hash = self.users[username]
        return StoredCredential(user_id=user_id, password_hash=SecretStr(password_hash))

    def get_username(self, user_id):
        for username, (uid, _) in self.users.items():
            if uid == user_id:
                return username
        return None

    def update_password_hash(self, user_id, password_hash):
        for username, (uid, _) in self.users.items():
            if uid == user_id:
                self.users[username] = (uid, password_hash)
                return True
        return False

    def password_hash_for(self, username: str) -> str:
        return self.users[username][1]


class FakeTransaction:
    """Stages writes until commit(), like a real database transaction."""

    def __init__(self, db: "FakeSubscriptionDatabase"):
        self._db = db
        self.subscribers: dict[UUID, Subscriber] = {}
        self.tokens: dict[str, UUID] = {}
        self.confirmations: set[UUID] = set()
        self.committed = False

    def commit(self) -> None:
        self._db.subscribers.update(self.subscribers)
        self._db.tokens.update(self.tokens)
        for subscriber_id in self.confirmations:
            subscriber = self._db.subscribers[subscriber_id]
            self._db.subscribers[subscriber_id] = subscriber.model_copy(
                update={"status": SubscriberStatus.CONFIRMED}
            )
        self.committed = True


class FakeSubscriptionDatabase:
    """
    In-memory SubscriptionDatabase.

    Put a method name in fail_on to make that step raise a psycopg2 error.
    Email uniqueness is enforced like the UNIQUE constraint.
    """

    def __init__(self):
        self.subscribers: dict[UUID, Subscriber] = {}
        self.tokens: dict[str, UUID] = {}
        self.fail_on: set[str] = set()
        self.transactions: list[FakeTransaction] = []

    def _maybe_fail(self, step: str) -> None:
        if step in self.fail_on:
            raise psycopg2.OperationalError(f"{step} failed")

    @contextmanager
    def transaction(self):
        tx = FakeTransaction(self)
        self.transactions.append(tx)
        yield tx

    def insert_subscriber(self, tx, new_subscriber):
        self._maybe_fail("insert_subscriber")
        emails = {s.email for s in self.subscribers.values()}
        emails |= {s.email for s in tx.subscribers.values()}
        if new_subscriber.email in emails:
            raise psycopg2.IntegrityError("duplicate key value violates unique constraint")
        subscriber = Subscriber(
            id=uuid4(),
            email=new_subscriber.email,
            name=new_subscriber.name,
            subscribed_at=now_utc(),
            status=SubscriberStatus.PENDING_CONFIRMATION,
        )
        tx.subscribers[subscriber.id] = subscriber
        return subscriber

    def store_token(self, tx, subscriber_id, token):
        self._maybe_fail("store_token")
        tx.tokens[token] = subscriber_id

    def get_subscriber_id_from_token(self, tx, token):
        self._maybe_fail("get_subscriber_id_from_token")
        return tx.tokens.get(token, self.tokens.get(token))

    def confirm_subscriber(self, tx, subscriber_id):
        self._maybe_fail("confirm_subscriber")
        tx.confirmations.add(subscriber_id)

    def get_confirmed_subscriber_emails(self):
        self._maybe_fail("get_confirmed_subscriber_emails")
        return [
            s.email for s in self.subscribers.values()
            if s.status == SubscriberStatus.CONFIRMED
        ]

    def tokens_for(self, subscriber_id: UUID) -> list[str]:
        return [t for t, sid in self.tokens.items() if sid == subscriber_id]


# =============================================================================
# CONSTANT FIXTURES
# =============================================================================


@pytest.fixture
def admin_user_id() -> UUID:
    return ADMIN_USER_ID


@pytest.fixture
def admin_username() -> str:
    return ADMIN_USERNAME


@pytest.fixture
def admin_password() -> str:
    return ADMIN_PASSWORD


@pytest.fixture
def fake_auth_db_factory():
    """Build an empty FakeAuthDatabase (for tests that seed their own users)."""
    return FakeAuthDatabase


# =============================================================================
# CONFIG FIXTURES
# =============================================================================


@pytest.fixture
def auth_config():
    """Insecure cookies so TestClient sends them over http://testserver."""
    return AuthConfig(session_cookie_secure=False)


@pytest.fixture
def newsletter_config():
    return NewsletterConfig(app_base_url="http://127.0.0.1:8000")


@pytest.fixture
def secret_key():
    return "flash-signing-key-for-tests"


# =============================================================================
# STORE FIXTURES
# =============================================================================


@pytest.fixture
def valkey():
    return FakeValkey()


@pytest.fixture
def subscriptions():
    return FakeSubscriptionDatabase()


@pytest.fixture(scope="session")
def hasher():
    return PasswordHasher()


@pytest.fixture(scope="session")
def admin_password_hash(hasher):
    return hasher.hash(ADMIN_PASSWORD)


@pytest.fixture
def auth_db(admin_password_hash):
    """Credential store holding one admin user."""
    db = FakeAuthDatabase()
    db.add_user(ADMIN_USERNAME, ADMIN_USER_ID, admin_password_hash)
    return db


@pytest.fixture
def hashing_pool():
    pool = HashingPool(max_workers=2)
    yield pool
    pool.shutdown()


@pytest.fixture
def email_client():
    return Mock(spec=EmailClient)


@pytest.fixture
def security_logger():
    return Mock(spec=SecurityLogger)


# =============================================================================
# APP FIXTURES
# =============================================================================


@pytest.fixture
def app(
    auth_config,
    newsletter_config,
    secret_key,
    valkey,
    auth_db,
    subscriptions,
    email_client,
    security_logger,
    monkeypatch,
):
    """Fully wired app from main.create_app, with stores swapped for fakes."""
    import main

    monkeypatch.setattr(main, "AuthDatabase", lambda postgres: auth_db)
    monkeypatch.setattr(main, "SubscriptionDatabase", lambda postgres: subscriptions)
    monkeypatch.setattr(main, "SecurityLogger", lambda postgres: security_logger)

    return main.create_app(
        auth_config=auth_config,
        newsletter_config=newsletter_config,
        postgres=Mock(),
        valkey=valkey,
        email_client=email_client,
        secret_key=secret_key,
    )


@pytest.fixture
def client(app):
    """TestClient that surfaces redirects instead of following them."""
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    """TestClient already logged in as the admin."""
    response = client.post(
        "/login",
        data={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/admin/dashboard"
    return client
