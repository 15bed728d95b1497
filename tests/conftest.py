"""Shared test fixtures for the invoicing test suite.

Nothing here needs a database or network: repositories, the payment
gateway and Redis are in-memory stand-ins from tests/fakes.py.
"""

from decimal import Decimal
from unittest.mock import Mock
from uuid import UUID

import pytest

import clients.vault_client as vault_module
from core.audit import AuditLogger
from core.config import InvoicingConfig
from core.event_bus import EventBus
from core.models import ClientCreate, InvoiceCreate, InvoiceItemCreate, PaymentMethod
from core.services.client_service import ClientService
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService
from core.services.public_invoice_service import PublicInvoiceService
from utils.user_context import user_context, clear_current_user_id

from fakes import (
    InMemoryClientRepository,
    InMemoryInvoiceRepository,
    InMemoryPaymentRepository,
    InMemoryRedis,
    SimulatedGateway,
)


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test user - use for account isolation tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_user_id()
    yield
    clear_current_user_id()


@pytest.fixture(autouse=True)
def reset_vault_cache():
    """Vault singleton and secret cache never leak between tests."""
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()
    yield
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID (for isolation tests)."""
    return TEST_USER_B_ID


@pytest.fixture
def as_test_user(test_user_id):
    """Run the test as the primary test user."""
    with user_context(test_user_id):
        yield test_user_id


@pytest.fixture
def as_test_user_b(test_user_b_id):
    """Run the test as the secondary test user."""
    with user_context(test_user_b_id):
        yield test_user_b_id


# =============================================================================
# VALKEY FIXTURES
# =============================================================================


@pytest.fixture
def redis_backend(monkeypatch):
    """In-memory Redis behind every ValkeyClient created in the test."""
    backend = InMemoryRedis()
    monkeypatch.setattr("clients.valkey_client.redis.from_url", lambda url, **kwargs: backend)
    return backend


@pytest.fixture
def valkey(redis_backend):
    from clients.valkey_client import ValkeyClient

    client = ValkeyClient("redis://localhost:6379/15")
    yield client
    client.close()


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def config():
    return InvoicingConfig(app_base_url="https://billing.example.test")


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published(event_bus):
    """Every event published on the bus, in order."""
    events = []
    for name in ("InvoiceCreated", "InvoicePaid", "InvoicePaymentFailed", "ClientCreated"):
        event_bus.subscribe(name, events.append)
    return events


@pytest.fixture
def client_repo():
    return InMemoryClientRepository()


@pytest.fixture
def invoice_repo():
    return InMemoryInvoiceRepository()


@pytest.fixture
def payment_repo():
    return InMemoryPaymentRepository()


@pytest.fixture
def gateway():
    return SimulatedGateway(outcome=True)


@pytest.fixture
def client_service(client_repo, audit, event_bus):
    return ClientService(client_repo, audit, event_bus)


@pytest.fixture
def invoice_service(client_repo, invoice_repo, audit, event_bus, config):
    return InvoiceService(client_repo, invoice_repo, audit, event_bus, config)


@pytest.fixture
def public_service(invoice_repo):
    return PublicInvoiceService(invoice_repo)


@pytest.fixture
def payment_service(invoice_service, public_service, payment_repo, gateway, config):
    return PaymentService(
        invoice_service,
        public_service,
        payment_repo,
        gateways={
            PaymentMethod.STRIPE: gateway,
            PaymentMethod.PAYPAL: gateway,
            PaymentMethod.BANK_TRANSFER: gateway,
        },
        link_gateway=gateway,
        config=config,
    )


@pytest.fixture
def services(client_service, invoice_service, payment_service, public_service):
    return {
        "client": client_service,
        "invoice": invoice_service,
        "payment": payment_service,
        "public": public_service,
    }


# =============================================================================
# DATA FIXTURES
# =============================================================================


@pytest.fixture
def test_client(as_test_user, client_service):
    """A client owned by the primary test user."""
    return client_service.create(ClientCreate(
        name="Grace Hopper",
        company="Cobol Works",
        email="grace@example.com",
        address="1 Compiler Road",
    ))


@pytest.fixture
def make_invoice(invoice_service, test_client):
    """Factory creating invoices for test_client (primary test user context)."""

    def _make(
        items=None,
        discount_type="percentage",
        discount_value=0,
        tax_rate=0,
        payment_method=PaymentMethod.STRIPE,
        due_at=None,
    ):
        if items is None:
            items = [InvoiceItemCreate(description="Consulting", quantity=2, unit_price="50")]
        return invoice_service.create(InvoiceCreate(
            client_id=test_client.id,
            items=items,
            discount_type=discount_type,
            discount_value=discount_value,
            tax_rate=tax_rate,
            payment_method=payment_method,
            due_at=due_at,
        ))

    return _make


@pytest.fixture
def invoice(make_invoice):
    """An unpaid $100.00 card invoice."""
    created = make_invoice()
    assert created.total == Decimal("100")
    return created
