"""
PostgreSQL repositories.

All queries run through PostgresClient, so Row Level Security scopes them
to the account in utils.user_context. Public token lookups go through
SECURITY DEFINER functions (see db/schema.sql) that return nothing but
the invoice id and its owning account.
"""

import logging
from datetime import datetime
from typing import Any, Iterable
from uuid import UUID

from psycopg2.errors import UniqueViolation
from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.exceptions import DuplicateInvoiceNumberError
from core.models import Client, Invoice, InvoiceItem, InvoiceStatus, PaymentAttempt
from core.repositories.base import ClientRepository, InvoiceRepository, PaymentRepository
from utils.user_context import user_context

logger = logging.getLogger(__name__)

# Valid columns that can be updated on clients
_CLIENT_COLUMNS = {"name", "company", "email", "address"}

_INVOICE_NUMBER_CONSTRAINT = "invoices_user_invoice_number_key"


class PostgresClientRepository(ClientRepository):

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def add(self, client: Client) -> Client:
        row = self.postgres.execute_returning(
            """
            INSERT INTO clients (
                id, user_id, name, company, email, address, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                client.id, client.user_id, client.name, client.company,
                client.email, client.address, client.created_at, client.updated_at
            )
        )[0]
        return Client.model_validate(row)

    def get(self, client_id: UUID) -> Client | None:
        row = self.postgres.execute_single(
            "SELECT * FROM clients WHERE id = %s AND deleted_at IS NULL",
            (client_id,)
        )
        if row is None:
            return None
        return Client.model_validate(row)

    def update(self, client_id: UUID, changes: dict[str, Any], updated_at: datetime) -> Client | None:
        unknown = set(changes) - _CLIENT_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update client columns: {', '.join(sorted(unknown))}")

        set_parts = [f"{column} = %s" for column in changes]
        params = list(changes.values())

        set_parts.append("updated_at = %s")
        params.append(updated_at)
        params.append(client_id)

        rows = self.postgres.execute_returning(
            f"""
            UPDATE clients
            SET {', '.join(set_parts)}
            WHERE id = %s AND deleted_at IS NULL
            RETURNING *
            """,
            tuple(params)
        )
        return Client.model_validate(rows[0]) if rows else None

    def soft_delete(self, client_id: UUID, deleted_at: datetime) -> bool:
        rows = self.postgres.execute_returning(
            """
            UPDATE clients
            SET deleted_at = %s, updated_at = %s
            WHERE id = %s AND deleted_at IS NULL
            RETURNING id
            """,
            (deleted_at, deleted_at, client_id)
        )
        return bool(rows)

    def list_all(self, limit: int, offset: int) -> list[Client]:
        rows = self.postgres.execute(
            """
            SELECT * FROM clients
            WHERE deleted_at IS NULL
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            (limit, offset)
        )
        return [Client.model_validate(row) for row in rows]


class PostgresInvoiceRepository(InvoiceRepository):

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def _items_for(self, invoice_ids: list[UUID]) -> dict[UUID, list[InvoiceItem]]:
        if not invoice_ids:
            return {}

        rows = self.postgres.execute(
            """
            SELECT * FROM invoice_items
            WHERE invoice_id = ANY(%s::uuid[])
            ORDER BY invoice_id, position
            """,
            (invoice_ids,)
        )

        grouped: dict[UUID, list[InvoiceItem]] = {}
        for row in rows:
            item = InvoiceItem.model_validate(row)
            grouped.setdefault(item.invoice_id, []).append(item)
        return grouped

    def _hydrate(self, rows: list[dict[str, Any]]) -> list[Invoice]:
        """Attach items and the client snapshot to invoice rows."""
        items = self._items_for([row["id"] for row in rows])
        invoices = []
        for row in rows:
            data = dict(row)
            data["client"] = data.pop("client_snapshot")
            data["items"] = items.get(data["id"], [])
            invoices.append(Invoice.model_validate(data))
        return invoices

    def add(self, invoice: Invoice) -> Invoice:
        try:
            self._insert(invoice)
        except UniqueViolation as e:
            if e.diag.constraint_name == _INVOICE_NUMBER_CONSTRAINT:
                raise DuplicateInvoiceNumberError(invoice.invoice_number) from e
            raise

        stored = self.get(invoice.id)
        if stored is None:
            raise RuntimeError(f"Invoice {invoice.id} not visible after insert")
        return stored

    def _insert(self, invoice: Invoice) -> None:
        with self.postgres.transaction() as cur:
            cur.execute(
                """
                INSERT INTO invoices (
                    id, user_id, client_id, client_snapshot, invoice_number,
                    subtotal, discount_type, discount_value, discount_amount,
                    tax_rate, tax_amount, total, currency,
                    status, payment_method, notes, due_at, paid_at,
                    public_token, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s, %s
                )
                """,
                (
                    invoice.id, invoice.user_id, invoice.client_id,
                    Json(invoice.client.model_dump(mode="json")), invoice.invoice_number,
                    invoice.subtotal, invoice.discount_type.value,
                    invoice.discount_value, invoice.discount_amount,
                    invoice.tax_rate, invoice.tax_amount, invoice.total, invoice.currency,
                    invoice.status.value, invoice.payment_method.value, invoice.notes,
                    invoice.due_at, invoice.paid_at,
                    invoice.public_token, invoice.created_at, invoice.updated_at
                )
            )
            for item in invoice.items:
                cur.execute(
                    """
                    INSERT INTO invoice_items (
                        id, user_id, invoice_id, position, description,
                        quantity, unit_price, total
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        item.id, invoice.user_id, invoice.id, item.position,
                        item.description, item.quantity, item.unit_price, item.total
                    )
                )

    def get(self, invoice_id: UUID) -> Invoice | None:
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s AND deleted_at IS NULL",
            (invoice_id,)
        )
        if row is None:
            return None
        return self._hydrate([row])[0]

    def find_by_public_token(self, token: str) -> Invoice | None:
        owner = self.postgres.execute_single(
            "SELECT invoice_id, user_id FROM invoice_for_public_token(%s)",
            (token,)
        )
        if owner is None:
            return None

        with user_context(owner["user_id"]):
            return self.get(owner["invoice_id"])

    def public_token_exists(self, token: str) -> bool:
        return bool(self.postgres.execute_scalar(
            "SELECT public_token_in_use(%s)",
            (token,)
        ))

    def last_invoice_number(self, prefix: str) -> str | None:
        row = self.postgres.execute_single(
            """
            SELECT invoice_number FROM invoices
            WHERE invoice_number LIKE %s
            ORDER BY length(invoice_number) DESC, invoice_number DESC
            LIMIT 1
            """,
            (f"{prefix}%",)
        )
        return row["invoice_number"] if row else None

    def list_all(
        self,
        statuses: Iterable[InvoiceStatus] | None,
        due_before: datetime | None,
        limit: int,
        offset: int,
    ) -> list[Invoice]:
        conditions = ["deleted_at IS NULL"]
        params: list[Any] = []

        if statuses is not None:
            conditions.append("status = ANY(%s)")
            params.append([s.value for s in statuses])
        if due_before is not None:
            conditions.append("due_at < %s")
            params.append(due_before)

        params.extend([limit, offset])

        rows = self.postgres.execute(
            f"""
            SELECT * FROM invoices
            WHERE {' AND '.join(conditions)}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            tuple(params)
        )
        return self._hydrate(rows)

    def list_for_client(self, client_id: UUID, limit: int) -> list[Invoice]:
        rows = self.postgres.execute(
            """
            SELECT * FROM invoices
            WHERE client_id = %s AND deleted_at IS NULL
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (client_id, limit)
        )
        return self._hydrate(rows)

    def update_status(
        self,
        invoice_id: UUID,
        expected: Iterable[InvoiceStatus],
        status: InvoiceStatus,
        paid_at: datetime | None,
        updated_at: datetime,
    ) -> Invoice | None:
        rows = self.postgres.execute_returning(
            """
            UPDATE invoices
            SET status = %s, paid_at = %s, updated_at = %s
            WHERE id = %s AND deleted_at IS NULL AND status = ANY(%s)
            RETURNING *
            """,
            (status.value, paid_at, updated_at, invoice_id, [s.value for s in expected])
        )
        if not rows:
            return None
        return self._hydrate(rows)[0]

    def soft_delete(self, invoice_id: UUID, deleted_at: datetime) -> bool:
        rows = self.postgres.execute_returning(
            """
            UPDATE invoices
            SET deleted_at = %s, updated_at = %s
            WHERE id = %s AND deleted_at IS NULL
            RETURNING id
            """,
            (deleted_at, deleted_at, invoice_id)
        )
        return bool(rows)


class PostgresPaymentRepository(PaymentRepository):

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def add(self, attempt: PaymentAttempt) -> PaymentAttempt:
        row = self.postgres.execute_returning(
            """
            INSERT INTO payments (
                id, user_id, invoice_id, gateway, amount, currency,
                status, transaction_id, error, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                attempt.id, attempt.user_id, attempt.invoice_id, attempt.gateway,
                attempt.amount, attempt.currency, attempt.status.value,
                attempt.transaction_id, attempt.error, attempt.created_at
            )
        )[0]
        return PaymentAttempt.model_validate(row)

    def list_for_invoice(self, invoice_id: UUID) -> list[PaymentAttempt]:
        rows = self.postgres.execute(
            """
            SELECT * FROM payments
            WHERE invoice_id = %s
            ORDER BY created_at DESC
            """,
            (invoice_id,)
        )
        return [PaymentAttempt.model_validate(row) for row in rows]
