"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidCredentialsError(AuthError):
    """
    Username/password pair rejected.

    Raised for an unknown username and for a wrong password alike, always
    with the same message. Callers must not try to tell the two apart.
    """


class SessionExpiredError(AuthError):
    """Session token unknown, revoked, or expired. User must log in again."""
