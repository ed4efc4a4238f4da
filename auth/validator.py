"""Credential validation with username-enumeration defense.

Whether or not the username exists, exactly one argon2 verification runs:
against the user's real hash if found, against a dummy hash if not.
Response time and the raised error are therefore the same for "unknown
user" and "wrong password". The decision is made only after verification.

The dummy is derived once, at construction, by the same hasher that
hashes real passwords, so it always carries the configured argon2 cost.
"""

import logging
from uuid import UUID

import psycopg2
from starlette.concurrency import run_in_threadpool

from auth.database import AuthDatabase
from auth.exceptions import InvalidCredentialsError
from auth.passwords import HashingPool, PasswordHasher, VerifyOutcome
from auth.types import Credential
from utils.errors import UnexpectedError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


class CredentialValidator:
    """Turns a Credential into an authenticated user id or a uniform failure."""

    def __init__(
        self,
        auth_db: AuthDatabase,
        hasher: PasswordHasher,
        hashing_pool: HashingPool,
    ):
        self._auth_db = auth_db
        self._hasher = hasher
        self._hashing_pool = hashing_pool
        self._dummy_hash = hasher.dummy_hash()

    async def validate(self, credential: Credential) -> UUID:
        """
        Validate username and password.

        Raises:
            InvalidCredentialsError: Unknown username or wrong password
                (indistinguishable by message or timing).
            UnexpectedError: Storage failure, hashing pool failure, or a
                corrupt stored hash.
        """
        try:
            stored = await run_in_threadpool(
                self._auth_db.get_stored_credentials, credential.username
            )
        except psycopg2.Error as e:
            logger.error(f"Credential lookup failed: {e}")
            raise UnexpectedError("Failed to look up stored credentials") from e

        user_id = None
        expected_hash = self._dummy_hash
        if stored is not None:
            user_id = stored.user_id
            expected_hash = stored.password_hash.get_secret_value()

        outcome = await self._hashing_pool.run(
            self._hasher.verify,
            credential.password.get_secret_value(),
            expected_hash,
        )

        if outcome is VerifyOutcome.MALFORMED_HASH:
            raise UnexpectedError("Stored password hash is malformed")

        if outcome is VerifyOutcome.MATCH and user_id is not None:
            return user_id

        raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)
