"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "APP_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationException(AppException):
    """Raised when request input has an invalid shape."""

    code = "VALIDATION_ERROR"


class OfferingNotFoundException(AppException):
    """Raised when the requested offering does not exist."""

    status_code = 404
    code = "OFFERING_NOT_FOUND"


class OfferingUnavailableException(AppException):
    """Raised when the offering is full or inactive."""

    code = "OFFERING_UNAVAILABLE"


class OfferingPastException(AppException):
    """Raised when the workshop date has already passed."""

    code = "OFFERING_PAST"


class OfferingNoProductException(AppException):
    """Raised when the offering has no payment product configured."""

    status_code = 500
    code = "OFFERING_NO_PRODUCT"


class DuplicateBookingException(AppException):
    """Raised when the student already holds a resolved booking."""

    code = "DUPLICATE_BOOKING"


class FetchException(AppException):
    """Raised when reading from the CRM fails."""

    status_code = 500
    code = "FETCH_ERROR"


class CreateException(AppException):
    """Raised when writing to the CRM fails."""

    status_code = 500
    code = "CREATE_ERROR"


class CheckoutValidationException(AppException):
    """Raised when a checkout session request is malformed."""

    code = "STRIPE_VALIDATION_ERROR"


class CardException(AppException):
    """Raised for card errors reported by the payment processor."""

    code = "CARD_ERROR"


class SessionCreateException(AppException):
    """Raised when the checkout session could not be created."""

    status_code = 500
    code = "SESSION_CREATE_FAILED"


class WebhookSignatureMissingException(AppException):
    """Raised when the webhook request carries no signature."""

    code = "WEBHOOK_SIGNATURE_MISSING"


class WebhookSignatureInvalidException(AppException):
    """Raised when the webhook signature does not verify."""

    code = "WEBHOOK_SIGNATURE_INVALID"


class WebhookProcessingException(AppException):
    """Raised when a verified webhook event could not be fully applied."""

    status_code = 500
    code = "WEBHOOK_PROCESSING_FAILED"


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """Build error envelope response."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}},
    )


def format_validation_errors(exc: RequestValidationError | ValidationError) -> str:
    """Flatten pydantic errors into `path: message` pairs."""
    parts = []
    for error in exc.errors():
        location = [str(item) for item in error.get("loc", ()) if item not in ("body", "query")]
        message = error.get("msg", "Invalid value")
        parts.append(f"{'.'.join(location)}: {message}" if location else message)
    return ", ".join(parts)


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    return error_response(exc.status_code, exc.code, exc.message)


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors in unified shape."""
    return error_response(400, ValidationException.code, format_validation_errors(exc))


async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle routing HTTP exceptions in unified shape."""
    if exc.status_code == 404:
        return error_response(404, "NOT_FOUND", "Endpoint not found")
    if exc.status_code == 405:
        return error_response(405, "METHOD_NOT_ALLOWED", "Method not allowed")
    return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error: %s", exc)
    return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
