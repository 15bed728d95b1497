"""
Domain events for invoicing.

Immutable event objects that represent state changes. A service publishes
what happened; handlers react without the publisher knowing who's listening.

Event Categories:
- InvoiceEvent: Invoice lifecycle (created, paid, payment failed)
- ClientEvent: Client lifecycle (created)

Events carry the full domain object as persisted, so handlers never
re-fetch state that may not be visible yet.

main.build_services subscribes InvoicePaid (receipt email) and
InvoicePaymentFailed (decline log). InvoiceCreated and ClientCreated have
no built-in subscriber; they are published for integrations to hook.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class InvoicingEvent:
    """Base class for all invoicing domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# INVOICE EVENTS
# =============================================================================


@dataclass(frozen=True)
class InvoiceEvent(InvoicingEvent):
    """Events related to invoice lifecycle."""
    pass


@dataclass(frozen=True)
class InvoiceCreated(InvoiceEvent):
    """A new invoice was created in UNPAID status."""
    invoice: Any = None  # Invoice; Any avoids a circular import

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceCreated":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoicePaid(InvoiceEvent):
    """Invoice moved to PAID, by payment or by hand."""
    invoice: Any = None
    manual: bool = False

    @classmethod
    def create(cls, invoice: Any, manual: bool = False) -> "InvoicePaid":
        return cls(invoice=invoice, manual=manual)


@dataclass(frozen=True)
class InvoicePaymentFailed(InvoiceEvent):
    """A payment attempt was declined or errored."""
    invoice: Any = None

    @classmethod
    def create(cls, invoice: Any) -> "InvoicePaymentFailed":
        return cls(invoice=invoice)


# =============================================================================
# CLIENT EVENTS
# =============================================================================


@dataclass(frozen=True)
class ClientEvent(InvoicingEvent):
    """Events related to client lifecycle."""
    pass


@dataclass(frozen=True)
class ClientCreated(ClientEvent):
    """A new client was created."""
    client: Any = None

    @classmethod
    def create(cls, client: Any) -> "ClientCreated":
        return cls(client=client)
