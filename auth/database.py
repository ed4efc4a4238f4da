"""Database operations for admin users (the credential store).

Users are created out of band; this module reads credentials and updates
password hashes. Password hashes never leave this module as plain str.
"""

from uuid import UUID

from pydantic import SecretStr

from clients.postgres_client import PostgresClient
from auth.types import StoredCredential


def _as_uuid(value) -> UUID:
    return UUID(value) if isinstance(value, str) else value


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_stored_credentials(self, username: str) -> StoredCredential | None:
        """Find user id and password hash by exact username."""
        row = self._db.execute_single(
            """SELECT user_id, password_hash
               FROM users WHERE username = %s""",
            (username,),
        )
        if row is None:
            return None
        return StoredCredential(
            user_id=_as_uuid(row["user_id"]),
            password_hash=SecretStr(row["password_hash"]),
        )

    def get_username(self, user_id: UUID) -> str | None:
        """Username for display on the dashboard."""
        row = self._db.execute_single(
            "SELECT username FROM users WHERE user_id = %s",
            (user_id,),
        )
        return row["username"] if row else None

    def update_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        """
        Replace the stored PHC string.

        Returns:
            True if the user exists and was updated.
        """
        rows = self._db.execute_returning(
            """UPDATE users SET password_hash = %s
               WHERE user_id = %s
               RETURNING user_id""",
            (password_hash, user_id),
        )
        return len(rows) > 0
