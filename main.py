"""Application entry point: wires clients, services and routers.

Run with ``python main.py`` or ``uvicorn main:build_app --factory``.
Secrets come from Vault; tunables from the environment (.env).
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request

from api.actions import create_actions_router
from api.base import success_response
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from api.public import create_public_router
from auth.config import AuthConfig
from auth.rate_limiter import RateLimiter
from auth.security_middleware import AuthMiddleware
from auth.session import SessionManager
from clients import (
    EmailGatewayClient,
    PostgresClient,
    StripeGateway,
    ValkeyClient,
    get_database_url,
    get_email_config,
    get_stripe_config,
    get_valkey_url,
)
from core.audit import AuditLogger
from core.config import InvoicingConfig
from core.event_bus import EventBus
from core.handlers.invoice_payment_handler import handle_invoice_paid, handle_invoice_payment_failed
from core.models import PaymentMethod
from core.repositories import (
    PostgresClientRepository,
    PostgresInvoiceRepository,
    PostgresPaymentRepository,
)
from core.services.client_service import ClientService
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService
from core.services.public_invoice_service import PublicInvoiceService

logger = logging.getLogger(__name__)


def create_app(
    services: dict,
    session_manager: SessionManager,
    rate_limiter: RateLimiter | None = None,
    auth_config: AuthConfig | None = None,
    lifespan=None,
) -> FastAPI:
    """
    Assemble the FastAPI app around already-built services.

    Args:
        services: Keys "client", "invoice", "payment", "public"
        session_manager: Validates the account holder's session cookie
        rate_limiter: Throttles public invoice routes; None disables it
    """
    auth_config = auth_config or AuthConfig()

    app = FastAPI(title="Invoicing API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        AuthMiddleware,
        session_manager=session_manager,
        cookie_name=auth_config.session_cookie_name,
    )
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")
    app.include_router(
        create_public_router(services["public"], services["payment"], rate_limiter),
        prefix="/public",
    )

    @app.get("/health")
    async def health(request: Request):
        request_id = getattr(request.state, "request_id", None)
        return success_response({"status": "ok"}, request_id).model_dump(mode="json")

    return app


def build_services(
    postgres: PostgresClient,
    email: EmailGatewayClient | None,
    stripe_gateway: StripeGateway,
    config: InvoicingConfig,
) -> dict:
    """Build the service graph on top of Postgres and the payment gateway."""
    event_bus = EventBus()
    audit = AuditLogger(postgres)

    client_repo = PostgresClientRepository(postgres)
    invoice_repo = PostgresInvoiceRepository(postgres)
    payment_repo = PostgresPaymentRepository(postgres)

    client_service = ClientService(client_repo, audit, event_bus)
    invoice_service = InvoiceService(client_repo, invoice_repo, audit, event_bus, config)
    public_service = PublicInvoiceService(invoice_repo)
    payment_service = PaymentService(
        invoice_service,
        public_service,
        payment_repo,
        gateways={
            PaymentMethod.STRIPE: stripe_gateway,
            PaymentMethod.BANK_TRANSFER: stripe_gateway,
        },
        link_gateway=stripe_gateway,
        config=config,
    )

    event_bus.subscribe("InvoicePaymentFailed", handle_invoice_payment_failed())
    if email is not None:
        event_bus.subscribe("InvoicePaid", handle_invoice_paid(email, config.app_name))
    else:
        logger.warning("Email gateway not configured; payment receipts are disabled")

    return {
        "client": client_service,
        "invoice": invoice_service,
        "payment": payment_service,
        "public": public_service,
    }


def _load_email_client() -> EmailGatewayClient | None:
    if os.getenv("EMAIL_ENABLED", "true").lower() != "true":
        return None
    email_config = get_email_config()
    return EmailGatewayClient(**email_config)


def build_app() -> FastAPI:
    """Production app: secrets from Vault, tunables from the environment."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = InvoicingConfig(
        default_currency=os.getenv("DEFAULT_CURRENCY", "usd"),
        app_base_url=os.getenv("APP_BASE_URL", "http://localhost:8000"),
        payment_timeout_seconds=int(os.getenv("PAYMENT_TIMEOUT_SECONDS", "20")),
    )
    auth_config = AuthConfig()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    stripe_gateway = StripeGateway(
        get_stripe_config()["secret_key"],
        timeout_seconds=config.payment_timeout_seconds,
    )

    services = build_services(postgres, _load_email_client(), stripe_gateway, config)
    rate_limiter = RateLimiter(
        valkey,
        max_attempts=config.public_lookup_attempts,
        window_seconds=config.public_lookup_window_minutes * 60,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Invoicing API starting")
        yield
        PostgresClient.close_all_pools()
        valkey.close()
        logger.info("Invoicing API stopped")

    return create_app(
        services,
        SessionManager(valkey, auth_config),
        rate_limiter,
        auth_config,
        lifespan=lifespan,
    )


if __name__ == "__main__":
    uvicorn.run(
        "main:build_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
