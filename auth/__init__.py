"""Admin authentication: credentials, password hashing, sessions."""

from auth.exceptions import (
    AuthError,
    InvalidCredentialsError,
    SessionExpiredError,
)
from auth.types import Credential, StoredCredential, Session
from auth.config import AuthConfig
from auth.passwords import (
    HashingPool,
    PasswordHasher,
    VerifyOutcome,
)
from auth.database import AuthDatabase
from auth.validator import CredentialValidator
from auth.basic_auth import credential_from_basic_auth
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.session import SessionManager, TypedSession
from auth.security_middleware import AdminSessionMiddleware
from auth.api import create_auth_router
