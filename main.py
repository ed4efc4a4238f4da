"""Application factory: wires clients, services and routers into FastAPI.

Run with any ASGI server, e.g. `uvicorn main:build_app --factory`.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from api.errors import register_error_handlers
from api.flash import FlashMessages
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.passwords import HashingPool, PasswordHasher
from auth.security_logger import SecurityLogger
from auth.security_middleware import AdminSessionMiddleware
from auth.session import SessionManager
from auth.validator import CredentialValidator
from clients.email_client import EmailClient
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from newsletter.api import create_publishing_router, create_subscription_router
from newsletter.config import NewsletterConfig
from newsletter.database import SubscriptionDatabase
from newsletter.publisher import NewsletterPublisher
from newsletter.workflow import SubscriptionWorkflow

logger = logging.getLogger(__name__)

HOME_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta http-equiv="content-type" content="text/html; charset=utf-8">
<title>Home</title>
</head>
<body>
<p>Welcome to our newsletter!</p>
<p><a href="/login">Admin login</a></p>
</body>
</html>"""


def create_app(
    auth_config: AuthConfig,
    newsletter_config: NewsletterConfig,
    postgres: PostgresClient,
    valkey: ValkeyClient,
    email_client: EmailClient,
    secret_key: str,
) -> FastAPI:
    """Build the FastAPI app from already-connected clients.

    secret_key signs the flash cookie.
    """
    hasher = PasswordHasher(
        time_cost=auth_config.argon2_time_cost,
        memory_cost_kib=auth_config.argon2_memory_cost_kib,
        parallelism=auth_config.argon2_parallelism,
    )
    hashing_pool = HashingPool(max_workers=auth_config.hashing_workers)

    auth_db = AuthDatabase(postgres)
    session_manager = SessionManager(valkey, auth_config)
    security_logger = SecurityLogger(postgres)
    validator = CredentialValidator(auth_db, hasher, hashing_pool)
    flash = FlashMessages(secret_key)

    subscriptions = SubscriptionDatabase(postgres)
    workflow = SubscriptionWorkflow(newsletter_config, subscriptions, email_client)
    publisher = NewsletterPublisher(subscriptions, email_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        hashing_pool.shutdown()
        valkey.close()
        postgres.close()

    app = FastAPI(title="Newsletter", lifespan=lifespan)
    app.add_middleware(
        AdminSessionMiddleware,
        session_manager=session_manager,
        cookie_name=auth_config.session_cookie_name,
    )
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    @app.get("/health_check")
    async def health_check():
        return {"status": "ok"}

    @app.get("/", response_class=HTMLResponse)
    async def home():
        return HOME_PAGE

    app.include_router(create_subscription_router(workflow))
    app.include_router(create_publishing_router(validator, publisher, security_logger))
    app.include_router(
        create_auth_router(
            config=auth_config,
            validator=validator,
            session_manager=session_manager,
            auth_db=auth_db,
            hasher=hasher,
            hashing_pool=hashing_pool,
            security_logger=security_logger,
            flash=flash,
        )
    )
    return app


def build_app() -> FastAPI:
    """Production entry point: secrets from Vault, settings from env."""
    load_dotenv(Path(__file__).parent / ".env")
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from clients.vault_client import (
        get_app_secret_key,
        get_database_url,
        get_email_config,
        get_valkey_url,
    )

    auth_config = AuthConfig(
        session_cookie_secure=os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true",
    )
    newsletter_config = NewsletterConfig(
        app_base_url=os.getenv("APP_BASE_URL", "http://localhost:8000"),
    )
    email_settings = get_email_config()

    app = create_app(
        auth_config=auth_config,
        newsletter_config=newsletter_config,
        postgres=PostgresClient(get_database_url()),
        valkey=ValkeyClient(get_valkey_url()),
        email_client=EmailClient(
            base_url=email_settings["base_url"],
            sender=email_settings["sender"],
            authorization_token=email_settings["authorization_token"],
            timeout_seconds=newsletter_config.email_timeout_seconds,
        ),
        secret_key=get_app_secret_key(),
    )
    logger.info("Application built")
    return app
