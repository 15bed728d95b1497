"""Public invoice pages, addressed by token instead of a session.

    GET  /public/invoices/{token}           view the invoice
    POST /public/invoices/{token}/payments  pay it

Both routes count against the caller's lookup budget when a rate limiter
is configured, so tokens can't be enumerated cheaply.
"""

import logging

from fastapi import APIRouter, Body, Request

from api.base import success_response
from auth.rate_limiter import RateLimiter
from core.services.payment_service import PaymentService
from core.services.public_invoice_service import PublicInvoiceService

logger = logging.getLogger(__name__)


def _caller(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def create_public_router(
    public_service: PublicInvoiceService,
    payment_service: PaymentService,
    rate_limiter: RateLimiter | None = None,
) -> APIRouter:
    router = APIRouter()

    def _throttle(request: Request) -> None:
        if rate_limiter is not None:
            rate_limiter.check_rate_limit(_caller(request))

    @router.get("/invoices/{token}")
    async def get_public_invoice(request: Request, token: str):
        _throttle(request)
        view = public_service.view(token)
        request_id = getattr(request.state, "request_id", None)
        return success_response(view.public_dump(), request_id).model_dump(mode="json")

    @router.post("/invoices/{token}/payments")
    def submit_payment(request: Request, token: str, details: dict = Body(...)):
        _throttle(request)
        result = payment_service.submit_payment(token, details)
        if not result.success:
            logger.info(f"Payment declined for public invoice: {result.error}")
        request_id = getattr(request.state, "request_id", None)
        return success_response(result.model_dump(mode="json"), request_id).model_dump(mode="json")

    return router
