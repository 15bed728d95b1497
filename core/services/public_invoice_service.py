"""
Public invoice sharing.

Each invoice carries an unguessable token, generated once at creation.
Anyone holding the token can view that one invoice and pay it, without an
account. Tokens are opaque: they are not derived from the invoice id and
cannot be turned back into one.

A malformed token and an unknown token look identical to the caller.
Both resolve to None, so probing the format reveals nothing.
"""

import logging
import re
from datetime import datetime

from core.exceptions import InvoiceNotFoundError
from core.lifecycle import is_overdue
from core.models import Invoice, InvoiceView
from core.repositories import InvoiceRepository
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# secrets.token_urlsafe output: base64url alphabet, no padding
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


class PublicInvoiceService:
    """Resolves public tokens to invoices for unauthenticated callers."""

    def __init__(self, invoices: InvoiceRepository):
        self.invoices = invoices

    def resolve(self, token: str) -> Invoice | None:
        """
        Invoice for a public token, or None.

        Exact match only: no case folding, no prefix matching.
        Soft deleted invoices do not resolve.
        """
        if not token or not _TOKEN_PATTERN.match(token):
            logger.debug("Rejected malformed public token")
            return None

        return self.invoices.find_by_public_token(token)

    def require(self, token: str) -> Invoice:
        """
        Invoice for a public token.

        Raises:
            InvoiceNotFoundError: Unknown and malformed tokens alike. The
                message never echoes the token.
        """
        invoice = self.resolve(token)
        if invoice is None:
            raise InvoiceNotFoundError("Invoice not found")
        return invoice

    def view(self, token: str, now: datetime | None = None) -> InvoiceView:
        """
        Read-only view of the invoice behind a token.

        Raises:
            InvoiceNotFoundError: If the token doesn't resolve
        """
        invoice = self.require(token)
        now = now or now_utc()
        return InvoiceView.from_invoice(
            invoice,
            is_overdue=is_overdue(invoice.status, invoice.due_at, now),
        )
