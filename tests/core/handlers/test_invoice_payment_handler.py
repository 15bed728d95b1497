"""Tests for the invoice payment handler.

On InvoicePaid: email a receipt to the client captured on the invoice.
On InvoicePaymentFailed: log the decline.
"""

import logging
from unittest.mock import Mock

import pytest

from clients.email_client import EmailGatewayClient, EmailGatewayError
from core.events import InvoicePaid
from core.handlers.invoice_payment_handler import handle_invoice_paid, handle_invoice_payment_failed
from core.models import ClientCreate, InvoiceCreate, InvoiceItemCreate


@pytest.fixture
def email_client():
    return Mock(spec=EmailGatewayClient)


@pytest.fixture
def wired(event_bus, email_client):
    event_bus.subscribe("InvoicePaid", handle_invoice_paid(email_client, app_name="Acme Billing"))
    return email_client


class TestReceipt:

    def test_mark_paid_sends_receipt(self, wired, invoice, invoice_service):
        paid = invoice_service.mark_paid(invoice.id)

        wired.send_email.assert_called_once()
        kwargs = wired.send_email.call_args.kwargs
        assert kwargs["to"] == "grace@example.com"
        assert kwargs["subject"] == f"Payment received for invoice {invoice.invoice_number}"
        assert "$100.00" in kwargs["body"]
        assert paid.paid_at.strftime("%B %d, %Y") in kwargs["body"]
        assert kwargs["body"].startswith("Hi Grace Hopper,")
        assert kwargs["body"].endswith("Acme Billing")
        assert kwargs["dedupe_key"] == f"receipt:{invoice.id}"

    def test_failed_payment_sends_nothing(self, wired, invoice, invoice_service):
        invoice_service.confirm_payment(invoice.id, success=False)

        wired.send_email.assert_not_called()

    def test_snapshot_email_used(self, wired, invoice, invoice_service, client_service, test_client):
        from core.models import ClientUpdate

        client_service.update(test_client.id, ClientUpdate(email="changed@example.com"))
        invoice_service.mark_paid(invoice.id)

        assert wired.send_email.call_args.kwargs["to"] == "grace@example.com"

    def test_client_without_email_skipped(self, email_client, as_test_user, client_service, invoice_service):
        handler = handle_invoice_paid(email_client)
        client = client_service.create(ClientCreate(name="No Mail", email="nomail@example.com"))
        invoice = invoice_service.create(InvoiceCreate(
            client_id=client.id,
            items=[InvoiceItemCreate(description="x", quantity=1, unit_price="5")],
        ))
        paid = invoice_service.mark_paid(invoice.id)
        snapshot = paid.client.model_copy(update={"email": None})

        handler(InvoicePaid.create(paid.model_copy(update={"client": snapshot})))

        email_client.send_email.assert_not_called()

    def test_gateway_failure_does_not_undo_payment(self, wired, invoice, invoice_service):
        wired.send_email.side_effect = EmailGatewayError("Gateway error: down")

        paid = invoice_service.mark_paid(invoice.id)

        assert invoice_service.get_by_id(invoice.id).paid_at == paid.paid_at


class TestPaymentFailedLog:

    def test_decline_logged(self, event_bus, invoice, invoice_service, caplog):
        event_bus.subscribe("InvoicePaymentFailed", handle_invoice_payment_failed())

        with caplog.at_level(logging.WARNING, logger="core.handlers.invoice_payment_handler"):
            invoice_service.confirm_payment(invoice.id, success=False)

        assert f"Payment failed for invoice {invoice.invoice_number}" in caplog.text
        assert "$100.00 owed by Cobol Works via stripe" in caplog.text

    def test_successful_payment_not_logged(self, event_bus, invoice, invoice_service, caplog):
        event_bus.subscribe("InvoicePaymentFailed", handle_invoice_payment_failed())

        with caplog.at_level(logging.WARNING, logger="core.handlers.invoice_payment_handler"):
            invoice_service.confirm_payment(invoice.id, success=True)

        assert "Payment failed" not in caplog.text
