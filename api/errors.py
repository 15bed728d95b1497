"""Global exception handlers for FastAPI.

Domain exceptions become the unified error envelope with a stable code:

    NotFoundError                   404 NOT_FOUND
    InvoiceAlreadyPaidError         409 INVOICE_ALREADY_PAID
    InvalidStatusTransitionError    409 INVALID_STATUS_TRANSITION
    DuplicateInvoiceNumberError     409 DUPLICATE_INVOICE_NUMBER
    PaymentValidationError          422 VALIDATION_ERROR (with fields)
    PaymentMethodNotSupportedError  400 PAYMENT_METHOD_NOT_SUPPORTED
    PaymentGatewayError             502 PAYMENT_GATEWAY_ERROR
    RateLimitedError                429 RATE_LIMITED
    anything else                   500 INTERNAL_ERROR (logged)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from auth.exceptions import RateLimitedError
from clients.payment_gateway import PaymentGatewayError
from core.exceptions import (
    DuplicateInvoiceNumberError,
    InvalidStatusTransitionError,
    InvoiceAlreadyPaidError,
    NotFoundError,
    PaymentMethodNotSupportedError,
    PaymentValidationError,
)

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path"}


def _field_errors(errors: list[dict]) -> dict[str, str]:
    """Flatten pydantic error dicts into {"field.path": "message"}."""
    fields = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        fields.setdefault(".".join(loc) or "__root__", error.get("msg", "Invalid value"))
    return fields


def _respond(request: Request, status_code: int, code: str, message: str, fields=None, headers=None):
    return JSONResponse(
        status_code=status_code,
        content=error_response(
            code,
            message,
            fields=fields,
            request_id=getattr(request.state, "request_id", None),
        ).model_dump(mode="json"),
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _respond(request, 404, ErrorCodes.NOT_FOUND, str(exc))

    @app.exception_handler(InvoiceAlreadyPaidError)
    async def already_paid_handler(request: Request, exc: InvoiceAlreadyPaidError):
        return _respond(request, 409, ErrorCodes.INVOICE_ALREADY_PAID, str(exc))

    @app.exception_handler(InvalidStatusTransitionError)
    async def transition_handler(request: Request, exc: InvalidStatusTransitionError):
        return _respond(request, 409, ErrorCodes.INVALID_STATUS_TRANSITION, str(exc))

    @app.exception_handler(DuplicateInvoiceNumberError)
    async def duplicate_number_handler(request: Request, exc: DuplicateInvoiceNumberError):
        return _respond(request, 409, ErrorCodes.DUPLICATE_INVOICE_NUMBER, str(exc))

    @app.exception_handler(PaymentValidationError)
    async def payment_validation_handler(request: Request, exc: PaymentValidationError):
        return _respond(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc), fields=exc.fields)

    @app.exception_handler(PaymentMethodNotSupportedError)
    async def method_not_supported_handler(request: Request, exc: PaymentMethodNotSupportedError):
        return _respond(request, 400, ErrorCodes.PAYMENT_METHOD_NOT_SUPPORTED, str(exc))

    @app.exception_handler(PaymentGatewayError)
    async def gateway_error_handler(request: Request, exc: PaymentGatewayError):
        logger.warning(f"Payment gateway error: {exc}")
        return _respond(
            request, 502, ErrorCodes.PAYMENT_GATEWAY_ERROR,
            "Payment provider is unavailable. Please try again.",
        )

    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError):
        return _respond(
            request, 429, ErrorCodes.RATE_LIMITED, str(exc),
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        return _respond(
            request, 422, ErrorCodes.VALIDATION_ERROR, "Invalid input",
            fields=_field_errors(exc.errors()),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _respond(
            request, 422, ErrorCodes.VALIDATION_ERROR, "Invalid request",
            fields=_field_errors(exc.errors()),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _respond(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _respond(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
