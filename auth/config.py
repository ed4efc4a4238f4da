"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    The argon2 parameters apply to new hashes and to the dummy hash that
    unknown usernames are verified against.
    """

    # Session settings
    session_expiry_hours: int = Field(
        default=12,
        description="Session lifetime in hours (sliding on activity)",
        ge=1,
        le=720,
    )
    session_cookie_name: str = Field(
        default="session_token",
        description="Cookie carrying the session token",
    )
    session_cookie_secure: bool = Field(
        default=True,
        description="Send the session cookie over HTTPS only",
    )

    # Argon2id parameters for new hashes
    argon2_time_cost: int = Field(default=2, ge=1, le=10)
    argon2_memory_cost_kib: int = Field(default=15000, ge=8, le=1_048_576)
    argon2_parallelism: int = Field(default=1, ge=1, le=16)

    # Worker pool for hashing
    hashing_workers: int = Field(
        default=4,
        description="Max concurrent password hash/verify operations",
        ge=1,
        le=64,
    )
