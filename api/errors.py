"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from newsletter.exceptions import InvalidSubscriberError, InvalidTokenError
from utils.errors import UnexpectedError

logger = logging.getLogger(__name__)


def _json_error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Map domain exceptions to status codes.

    ValidationError role -> 400, Unauthorized role -> 401,
    UnexpectedError and anything unhandled -> 500 with a generic message.
    """

    @app.exception_handler(InvalidSubscriberError)
    async def invalid_subscriber_handler(request: Request, exc: InvalidSubscriberError):
        return _json_error(400, ErrorCodes.VALIDATION_ERROR, str(exc))

    @app.exception_handler(InvalidTokenError)
    async def invalid_token_handler(request: Request, exc: InvalidTokenError):
        return _json_error(401, ErrorCodes.INVALID_TOKEN, "Invalid subscription token")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _json_error(400, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(UnexpectedError)
    async def unexpected_error_handler(request: Request, exc: UnexpectedError):
        logger.error(f"{exc} (cause: {exc.__cause__!r})")
        return _json_error(500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json_error(500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
