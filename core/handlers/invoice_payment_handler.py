"""
Handlers for invoice payment events.

InvoicePaid: email a receipt to the client address captured on the invoice.
InvoicePaymentFailed: log the decline so the account can follow up.
"""

import logging
from typing import Callable

from core.events import InvoicePaid, InvoicePaymentFailed
from utils.money import format_currency

logger = logging.getLogger(__name__)


def handle_invoice_paid(email_client, app_name: str = "Invoicing") -> Callable:
    """
    Factory that returns an InvoicePaid handler.

    Args:
        email_client: EmailGatewayClient instance
        app_name: Sender name used in the email body

    Returns:
        Handler callable that sends a payment receipt
    """

    def handler(event: InvoicePaid):
        invoice = event.invoice

        if not invoice.client.email:
            logger.info(f"No email on invoice {invoice.invoice_number}, receipt skipped")
            return

        amount = format_currency(invoice.total, invoice.currency)
        paid_on = invoice.paid_at.strftime("%B %d, %Y")

        email_client.send_email(
            to=invoice.client.email,
            subject=f"Payment received for invoice {invoice.invoice_number}",
            body=(
                f"Hi {invoice.client.name},\n\n"
                f"Thank you! We received your payment of {amount} for invoice "
                f"{invoice.invoice_number} on {paid_on}.\n\n"
                f"{app_name}"
            ),
            dedupe_key=f"receipt:{invoice.id}",
        )

    return handler


def handle_invoice_payment_failed() -> Callable:
    """Factory that returns an InvoicePaymentFailed handler."""

    def handler(event: InvoicePaymentFailed):
        invoice = event.invoice
        logger.warning(
            "Payment failed for invoice %s: %s owed by %s via %s",
            invoice.invoice_number,
            format_currency(invoice.total, invoice.currency),
            invoice.client.display_name,
            invoice.payment_method.value,
        )

    return handler
