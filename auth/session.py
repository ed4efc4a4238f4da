"""Session token lifecycle management.

Sessions are stored in Valkey with TTL matching session expiry.
Token format is cryptographically random (secrets.token_urlsafe).

SessionManager owns storage. TypedSession is the per-request view the
routes use: current() / establish() / destroy().
"""

import secrets
from datetime import timedelta
from uuid import UUID

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.types import Session
from auth.exceptions import SessionExpiredError
from utils.timezone import now_utc, parse_iso


class SessionManager:
    """Session token lifecycle management.

    Sessions are stored in Valkey with TTL matching session expiry.
    Every successful validation slides the expiry forward.
    """

    KEY_PREFIX = "session:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    def _store(self, session: Session) -> None:
        self._valkey.set_json(
            self._key(session.token),
            {
                "user_id": str(session.user_id),
                "created_at": session.created_at.isoformat(),
                "expires_at": session.expires_at.isoformat(),
                "last_activity_at": session.last_activity_at.isoformat(),
            },
            expire_seconds=self._config.session_expiry_hours * 3600,
        )

    def create_session(self, user_id: UUID) -> Session:
        """Create a new session with a fresh random token."""
        now = now_utc()
        session = Session(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(hours=self._config.session_expiry_hours),
            last_activity_at=now,
        )
        self._store(session)
        return session

    def validate_session(self, token: str) -> Session:
        """Return the session for token, extending its expiry.

        Raises:
            SessionExpiredError: If token unknown, revoked, or expired.
        """
        data = self._valkey.get_json(self._key(token))

        if data is None:
            raise SessionExpiredError("Session not found or expired")

        try:
            session = Session(
                token=token,
                user_id=UUID(data["user_id"]),
                created_at=parse_iso(data["created_at"]),
                expires_at=parse_iso(data["expires_at"]),
                last_activity_at=parse_iso(data["last_activity_at"]),
            )
        except (KeyError, ValueError) as e:
            self._valkey.delete(self._key(token))
            raise SessionExpiredError("Session payload is corrupt") from e

        now = now_utc()

        # Valkey TTL normally evicts first
        if now > session.expires_at:
            self._valkey.delete(self._key(token))
            raise SessionExpiredError("Session expired")

        extended = session.model_copy(update={
            "expires_at": now + timedelta(hours=self._config.session_expiry_hours),
            "last_activity_at": now,
        })
        self._store(extended)
        return extended

    def revoke_session(self, token: str) -> None:
        """Revoke session. Safe to call with nonexistent token."""
        self._valkey.delete(self._key(token))


class TypedSession:
    """Request-scoped session: the token presented by the client, if any."""

    def __init__(self, session_manager: SessionManager, token: str | None):
        self._session_manager = session_manager
        self._token = token

    @property
    def token(self) -> str | None:
        return self._token

    def current(self) -> UUID | None:
        """Authenticated user id, or None if there is no live session."""
        if not self._token:
            return None
        try:
            return self._session_manager.validate_session(self._token).user_id
        except SessionExpiredError:
            return None

    def establish(self, user_id: UUID) -> Session:
        """
        Log user_id in under a brand-new token.

        Any token the client already presented is revoked first, so a
        token planted before login (session fixation) never becomes
        authenticated.
        """
        if self._token:
            self._session_manager.revoke_session(self._token)
        session = self._session_manager.create_session(user_id)
        self._token = session.token
        return session

    def destroy(self) -> None:
        """Log out."""
        if self._token:
            self._session_manager.revoke_session(self._token)
        self._token = None
