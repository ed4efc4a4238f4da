"""HTTP routes for subscribing, confirming, and publishing."""

import json
import logging
from dataclasses import asdict

from fastapi import APIRouter, Form, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from api.base import success_response, error_response, ErrorCodes
from auth.basic_auth import BASIC_REALM, credential_from_basic_auth
from auth.exceptions import InvalidCredentialsError
from auth.security_logger import SecurityEvent, SecurityLogger, client_ip
from auth.validator import CredentialValidator
from newsletter.domain import NewsletterIssue
from newsletter.publisher import NewsletterPublisher
from newsletter.workflow import SubscriptionWorkflow

logger = logging.getLogger(__name__)


def create_subscription_router(workflow: SubscriptionWorkflow) -> APIRouter:
    """Public double opt-in routes.

    Handlers are sync so FastAPI runs them in its threadpool; the workflow
    does blocking database and HTTP calls.
    """
    router = APIRouter(tags=["subscriptions"])

    @router.post("/subscription")
    def subscribe(name: str = Form(""), email: str = Form("")):
        """Register a pending subscriber and email a confirmation link.

        InvalidSubscriberError -> 400 and UnexpectedError -> 500 are mapped
        by the global error handlers.
        """
        subscriber = workflow.subscribe(name=name, email=email)
        return success_response({"status": subscriber.status.value})

    @router.get("/subscription/confirm")
    def confirm(subscription_token: str = Query(None)):
        """Confirm the subscriber owning the token."""
        if not subscription_token:
            return JSONResponse(
                status_code=400,
                content=error_response(
                    ErrorCodes.INVALID_REQUEST,
                    "subscription_token parameter is required",
                ).model_dump(mode="json"),
            )

        workflow.confirm(subscription_token)
        return success_response({"status": "confirmed"})

    return router


def create_publishing_router(
    validator: CredentialValidator,
    publisher: NewsletterPublisher,
    security_logger: SecurityLogger,
) -> APIRouter:
    """Newsletter publishing behind HTTP Basic auth."""
    router = APIRouter(tags=["newsletter"])

    def unauthorized() -> JSONResponse:
        return JSONResponse(
            status_code=401,
            headers={"WWW-Authenticate": BASIC_REALM},
            content=error_response(
                ErrorCodes.NOT_AUTHENTICATED,
                "Authentication failed",
            ).model_dump(mode="json"),
        )

    @router.post("/newsletter")
    async def publish_newsletter(request: Request):
        """Send an issue to all confirmed subscribers.

        Credentials are checked before the body is even parsed.
        """
        username = None
        try:
            credential = credential_from_basic_auth(request.headers.get("Authorization"))
            username = credential.username
            user_id = await validator.validate(credential)
        except InvalidCredentialsError:
            await run_in_threadpool(
                security_logger.log,
                SecurityEvent.PUBLISH_AUTH_FAILED,
                username=username,
                ip_address=client_ip(request),
            )
            return unauthorized()

        await run_in_threadpool(
            security_logger.log,
            SecurityEvent.PUBLISH_AUTHENTICATED,
            username=username,
            user_id=user_id,
        )

        try:
            issue = NewsletterIssue.model_validate(await request.json())
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.info(f"Rejected malformed newsletter body: {e}")
            return JSONResponse(
                status_code=400,
                content=error_response(
                    ErrorCodes.VALIDATION_ERROR,
                    "Body must be {title, content: {html, text}}",
                ).model_dump(mode="json"),
            )

        report = await run_in_threadpool(publisher.publish, issue)
        return success_response(asdict(report))

    return router
