"""
Password hashing and the worker pool it runs on.

Hashing is argon2id via argon2-cffi, output as a PHC string
($argon2id$v=19$m=...,t=...,p=...$salt$hash). It is deliberately slow, so
request handlers never call PasswordHasher directly on the event loop: they
go through HashingPool.run(), which executes the call on a bounded thread
pool and awaits the result.
"""

import asyncio
import logging
import secrets
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable

from argon2 import PasswordHasher as Argon2Hasher, Type
from argon2.exceptions import (
    HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

from utils.errors import UnexpectedError

logger = logging.getLogger(__name__)


class VerifyOutcome(Enum):
    """Result of checking a password against a stored hash."""

    MATCH = "match"
    NO_MATCH = "no_match"
    MALFORMED_HASH = "malformed_hash"


class PasswordHasher:
    """argon2id hashing and verification. Pure and CPU-bound, no I/O."""

    def __init__(self, time_cost: int = 2, memory_cost_kib: int = 15000, parallelism: int = 1):
        self._argon2 = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost_kib,
            parallelism=parallelism,
            type=Type.ID,
        )

    def hash(self, password: str) -> str:
        """
        Derive a PHC string with a fresh random salt.

        Raises:
            ValueError: If password is empty.
            UnexpectedError: If argon2 fails to hash.
        """
        if not password:
            raise ValueError("Password must not be empty")
        try:
            return self._argon2.hash(password)
        except HashingError as e:
            raise UnexpectedError("Failed to hash password") from e

    def dummy_hash(self) -> str:
        """
        Hash of a random throwaway secret, with this hasher's parameters.

        Nothing can match it. Verifying against it costs exactly what
        verifying a real hash made by this hasher costs.
        """
        return self.hash(secrets.token_urlsafe(32))

    def verify(self, password: str, stored_hash: str) -> VerifyOutcome:
        """Check password against a PHC string. Never raises on bad input."""
        try:
            self._argon2.verify(stored_hash, password)
        except VerifyMismatchError:
            return VerifyOutcome.NO_MATCH
        except (InvalidHashError, VerificationError):
            logger.error("Stored password hash is not a valid argon2 PHC string")
            return VerifyOutcome.MALFORMED_HASH
        return VerifyOutcome.MATCH


class HashingPool:
    """Bounded thread pool that keeps hashing off the event loop."""

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="password-hashing",
        )

    async def run(self, fn: Callable[..., Any], *args: Any) -> Any:
        """
        Run fn(*args) on the pool and await its result.

        Raises:
            UnexpectedError: If the task can't be dispatched (pool shut down)
                or crashes inside the worker.
        """
        loop = asyncio.get_running_loop()
        try:
            future = loop.run_in_executor(self._executor, fn, *args)
        except RuntimeError as e:
            raise UnexpectedError("Failed to dispatch a password hashing task") from e

        try:
            return await future
        except (UnexpectedError, ValueError):
            raise
        except Exception as e:
            raise UnexpectedError("Password hashing task failed") from e

    def shutdown(self) -> None:
        """Stop accepting work and wait for running tasks."""
        self._executor.shutdown(wait=True)
