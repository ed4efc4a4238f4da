"""Shared HTTP plumbing: response envelope, error handlers, middleware."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
