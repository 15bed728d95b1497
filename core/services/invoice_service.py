"""
Invoice service: creation, totals, and status transitions.

Totals are computed once, at creation, from the submitted line items and
stored alongside them. Status changes go through core.lifecycle and are
persisted with a conditional update, so two concurrent payments can never
both mark the same invoice paid.
"""

import logging
import secrets
from datetime import datetime
from uuid import UUID, uuid4

from core.audit import AuditLogger, AuditAction
from core.config import InvoicingConfig
from core.event_bus import EventBus
from core.events import InvoiceCreated, InvoicePaid, InvoicePaymentFailed
from core.exceptions import (
    ClientNotFoundError,
    DuplicateInvoiceNumberError,
    InvoiceAlreadyPaidError,
    InvoiceNotFoundError,
)
from core.lifecycle import (
    PAYABLE_STATUSES,
    is_overdue,
    manual_payment_transition,
    payment_outcome_transition,
)
from core.models import (
    Invoice, InvoiceCreate, InvoiceItem, InvoiceStatus, InvoiceView,
)
from core.repositories import ClientRepository, InvoiceRepository
from core.totals import compute_totals, line_total
from utils.user_context import get_current_user_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Accepted values for list_all(status_filter=...)
STATUS_FILTERS = {"unpaid", "paid", "failed", "overdue"}

_TOKEN_ATTEMPTS = 5


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        clients: ClientRepository,
        invoices: InvoiceRepository,
        audit: AuditLogger,
        event_bus: EventBus,
        config: InvoicingConfig | None = None,
    ):
        self.clients = clients
        self.invoices = invoices
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or InvoicingConfig()

    def _generate_invoice_number(self) -> str:
        """
        Next invoice number for the current account.

        Format: INV-YYYYMMDD-XXXX where XXXX is a per-day sequence.
        """
        today = now_utc().strftime("%Y%m%d")
        prefix = f"{self.config.invoice_number_prefix}-{today}-"

        existing = self.invoices.last_invoice_number(prefix)
        if existing is None:
            sequence = 1
        else:
            try:
                sequence = int(existing.split("-")[-1]) + 1
            except (ValueError, IndexError):
                sequence = 1

        return f"{prefix}{sequence:04d}"

    def _generate_public_token(self) -> str:
        """
        Random URL-safe token, unrelated to the invoice id.

        Raises:
            RuntimeError: If every attempt collided (the RNG is broken)
        """
        for _ in range(_TOKEN_ATTEMPTS):
            token = secrets.token_urlsafe(self.config.public_token_bytes)
            if not self.invoices.public_token_exists(token):
                return token
            logger.warning("Public token collision, regenerating")
        raise RuntimeError("Could not generate a unique public token")

    def _add_numbered(self, draft: Invoice) -> Invoice:
        """
        Insert draft under the next invoice number.

        Two creates in the same account can read the same last number;
        the loser retries once with a fresh one.
        """
        try:
            return self.invoices.add(
                draft.model_copy(update={"invoice_number": self._generate_invoice_number()})
            )
        except DuplicateInvoiceNumberError as e:
            logger.info("Invoice number %s taken concurrently, renumbering", e.invoice_number)

        return self.invoices.add(
            draft.model_copy(update={"invoice_number": self._generate_invoice_number()})
        )

    def create(self, data: InvoiceCreate) -> Invoice:
        """
        Create an invoice in UNPAID status.

        Args:
            data: Client, line items, discount, tax and payment method

        Returns:
            Created invoice with computed totals and a public token

        Raises:
            ClientNotFoundError: If the client doesn't exist for this account
            DuplicateInvoiceNumberError: If concurrent creates took the number twice
        """
        user_id = get_current_user_id()

        client = self.clients.get(data.client_id)
        if client is None:
            raise ClientNotFoundError(f"Client {data.client_id} not found")

        totals = compute_totals(data.items, data.discount_type, data.discount_value, data.tax_rate)

        invoice_id = uuid4()
        now = now_utc()
        items = [
            InvoiceItem(
                id=uuid4(),
                invoice_id=invoice_id,
                position=position,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=line_total(item.quantity, item.unit_price),
            )
            for position, item in enumerate(data.items)
        ]

        invoice = self._add_numbered(Invoice(
            id=invoice_id,
            user_id=user_id,
            client_id=client.id,
            client=client.snapshot(),
            invoice_number="",
            items=items,
            subtotal=totals.subtotal,
            discount_type=data.discount_type,
            discount_value=data.discount_value,
            discount_amount=totals.discount_amount,
            tax_rate=data.tax_rate,
            tax_amount=totals.tax_amount,
            total=totals.total,
            currency=data.currency or self.config.default_currency,
            status=InvoiceStatus.UNPAID,
            payment_method=data.payment_method,
            notes=data.notes,
            due_at=data.due_at,
            paid_at=None,
            public_token=self._generate_public_token(),
            created_at=now,
            updated_at=now,
        ))

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice.id,
            action=AuditAction.CREATE,
            changes={
                "created": {
                    "client_id": str(client.id),
                    "invoice_number": invoice.invoice_number,
                    "item_count": len(items),
                    "subtotal": str(totals.subtotal),
                    "discount_amount": str(totals.discount_amount),
                    "tax_amount": str(totals.tax_amount),
                    "total": str(totals.total),
                }
            }
        )

        self.event_bus.publish(InvoiceCreated.create(invoice=invoice))

        return invoice

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """Invoice if found for the current account and not deleted, None otherwise."""
        return self.invoices.get(invoice_id)

    def require(self, invoice_id: UUID) -> Invoice:
        """
        Invoice by id.

        Raises:
            InvoiceNotFoundError: If not found
        """
        invoice = self.invoices.get(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    def _apply_status(
        self,
        current: Invoice,
        new_status: InvoiceStatus,
    ) -> Invoice | None:
        """Conditional write of new_status. None if another writer moved the invoice first."""
        now = now_utc()
        paid_at = now if new_status == InvoiceStatus.PAID else None

        updated = self.invoices.update_status(
            current.id,
            expected=PAYABLE_STATUSES,
            status=new_status,
            paid_at=paid_at,
            updated_at=now,
        )
        if updated is None:
            return None

        self.audit.log_change(
            entity_type="invoice",
            entity_id=current.id,
            action=AuditAction.STATUS_CHANGE,
            changes={
                "status": {"old": current.status.value, "new": new_status.value},
                "paid_at": {
                    "old": None,
                    "new": paid_at.isoformat() if paid_at else None,
                },
            }
        )
        return updated

    def confirm_payment(self, invoice_id: UUID, success: bool) -> Invoice:
        """
        Feed a payment outcome into the invoice lifecycle.

        Success moves UNPAID or FAILED to PAID and stamps paid_at.
        Failure moves UNPAID to FAILED; line items and totals are untouched.

        Args:
            invoice_id: Invoice UUID
            success: Whether the gateway accepted the payment

        Returns:
            Invoice as persisted after the transition

        Raises:
            InvoiceNotFoundError: If not found
            InvoiceAlreadyPaidError: If already paid, including when a
                concurrent payment won the conditional update
        """
        current = self.require(invoice_id)
        new_status = payment_outcome_transition(current.status, success)

        updated = self._apply_status(current, new_status)
        if updated is None:
            logger.info(
                "Payment outcome for invoice %s discarded: status changed concurrently",
                invoice_id,
            )
            raise InvoiceAlreadyPaidError(current.invoice_number)

        if updated.is_paid:
            self.event_bus.publish(InvoicePaid.create(invoice=updated))
        else:
            self.event_bus.publish(InvoicePaymentFailed.create(invoice=updated))

        return updated

    def mark_paid(self, invoice_id: UUID) -> Invoice:
        """
        Mark an invoice paid by hand (cash, cheque, wire received).

        Idempotent: an invoice that is already paid is returned unchanged,
        keeping its original paid_at.

        Raises:
            InvoiceNotFoundError: If not found
        """
        current = self.require(invoice_id)

        new_status = manual_payment_transition(current.status)
        if new_status is None:
            return current

        updated = self._apply_status(current, new_status)
        if updated is None:
            # Paid concurrently; that satisfies the request.
            return self.require(invoice_id)

        self.event_bus.publish(InvoicePaid.create(invoice=updated, manual=True))

        return updated

    def delete(self, invoice_id: UUID) -> bool:
        """
        Soft delete an invoice. Its public link stops resolving.

        Returns:
            True if deleted, False if not found
        """
        current = self.invoices.get(invoice_id)
        if current is None:
            return False

        if not self.invoices.soft_delete(invoice_id, now_utc()):
            return False

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.DELETE,
            changes={"deleted": {
                "invoice_number": current.invoice_number,
                "status": current.status.value,
                "total": str(current.total),
            }}
        )

        return True

    def list_all(
        self,
        status_filter: str | None = None,
        limit: int = 50,
        offset: int = 0,
        now: datetime | None = None,
    ) -> list[Invoice]:
        """
        List invoices, newest first.

        Args:
            status_filter: unpaid, paid, failed, overdue, or None for all
            limit: Maximum results
            offset: Offset for pagination
            now: Reference time for the overdue filter (defaults to now)

        Raises:
            ValueError: If status_filter is not recognised
        """
        if status_filter is None:
            return self.invoices.list_all(None, None, limit, offset)

        if status_filter not in STATUS_FILTERS:
            raise ValueError(
                f"Unknown invoice filter '{status_filter}'. "
                f"Valid filters: {', '.join(sorted(STATUS_FILTERS))}"
            )

        if status_filter == "overdue":
            return self.invoices.list_all(
                [InvoiceStatus.UNPAID], now or now_utc(), limit, offset
            )

        return self.invoices.list_all([InvoiceStatus(status_filter)], None, limit, offset)

    def list_for_client(self, client_id: UUID, limit: int = 50) -> list[Invoice]:
        """List a client's invoices, newest first."""
        return self.invoices.list_for_client(client_id, limit)

    def history(self, invoice_id: UUID) -> list[dict]:
        """Audit trail for an invoice, newest first."""
        return self.audit.get_entity_history("invoice", invoice_id)

    def view(self, invoice: Invoice, now: datetime | None = None) -> InvoiceView:
        """Presentation view: rounded money and the derived overdue flag."""
        now = now or now_utc()
        return InvoiceView.from_invoice(
            invoice,
            is_overdue=is_overdue(invoice.status, invoice.due_at, now),
        )
