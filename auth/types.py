"""Pydantic models for auth domain."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, SecretStr


class Credential(BaseModel):
    """
    Username and plaintext password for a single validation call.

    The password is a SecretStr so it never shows up in reprs, logs,
    or model_dump output.
    """

    username: str
    password: SecretStr


class StoredCredential(BaseModel):
    """What the credential store holds for a username."""

    user_id: UUID
    password_hash: SecretStr


class Session(BaseModel):
    """An active admin session."""

    token: str = Field(..., description="Session token (opaque string)")
    user_id: UUID
    created_at: datetime
    expires_at: datetime
    last_activity_at: datetime
