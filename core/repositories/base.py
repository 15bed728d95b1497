"""
Persistence contracts for clients, invoices and payment attempts.

Every method is scoped to the current account (utils.user_context),
except the public token lookups, which exist precisely so a visitor
without an account can reach exactly one invoice.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable
from uuid import UUID

from core.models import Client, Invoice, InvoiceStatus, PaymentAttempt


class ClientRepository(ABC):

    @abstractmethod
    def add(self, client: Client) -> Client:
        """Insert a new client and return it as stored."""

    @abstractmethod
    def get(self, client_id: UUID) -> Client | None:
        """Live (not soft deleted) client, or None."""

    @abstractmethod
    def update(self, client_id: UUID, changes: dict[str, Any], updated_at: datetime) -> Client | None:
        """Apply column changes. None if the client doesn't exist."""

    @abstractmethod
    def soft_delete(self, client_id: UUID, deleted_at: datetime) -> bool:
        """Mark deleted. False if the client doesn't exist."""

    @abstractmethod
    def list_all(self, limit: int, offset: int) -> list[Client]:
        """Live clients, newest first."""


class InvoiceRepository(ABC):

    @abstractmethod
    def add(self, invoice: Invoice) -> Invoice:
        """
        Insert an invoice together with its items.

        Raises:
            DuplicateInvoiceNumberError: Number already used in the account
        """

    @abstractmethod
    def get(self, invoice_id: UUID) -> Invoice | None:
        """Live invoice with items in display order, or None."""

    @abstractmethod
    def find_by_public_token(self, token: str) -> Invoice | None:
        """
        Exact-match lookup across all accounts.

        No case folding, no prefix matching. Soft deleted invoices never resolve.
        """

    @abstractmethod
    def public_token_exists(self, token: str) -> bool:
        """Whether any invoice, in any account, already uses this token."""

    @abstractmethod
    def last_invoice_number(self, prefix: str) -> str | None:
        """Highest invoice number starting with prefix, compared numerically."""

    @abstractmethod
    def list_all(
        self,
        statuses: Iterable[InvoiceStatus] | None,
        due_before: datetime | None,
        limit: int,
        offset: int,
    ) -> list[Invoice]:
        """
        Live invoices, newest first.

        Args:
            statuses: Only these statuses (None for all)
            due_before: Only invoices with a due date strictly before this
        """

    @abstractmethod
    def list_for_client(self, client_id: UUID, limit: int) -> list[Invoice]:
        """Live invoices for one client, newest first."""

    @abstractmethod
    def update_status(
        self,
        invoice_id: UUID,
        expected: Iterable[InvoiceStatus],
        status: InvoiceStatus,
        paid_at: datetime | None,
        updated_at: datetime,
    ) -> Invoice | None:
        """
        Conditionally move an invoice to a new status.

        The write applies only if the stored status is still one of
        `expected`, as a single atomic row update. Returns None when the
        condition no longer holds (another writer got there first) or the
        invoice doesn't exist.
        """

    @abstractmethod
    def soft_delete(self, invoice_id: UUID, deleted_at: datetime) -> bool:
        """Mark deleted. False if the invoice doesn't exist."""


class PaymentRepository(ABC):

    @abstractmethod
    def add(self, attempt: PaymentAttempt) -> PaymentAttempt:
        """Record a payment attempt."""

    @abstractmethod
    def list_for_invoice(self, invoice_id: UUID) -> list[PaymentAttempt]:
        """Attempts for an invoice, newest first."""
