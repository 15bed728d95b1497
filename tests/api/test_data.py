"""Tests for GET /api/data."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from auth.types import Session
from utils.timezone import now_utc


class TestDataRequest:

    def test_unauthenticated_returns_401(self, unauthed_client):
        response = unauthed_client.get("/api/data", params={"type": "invoices"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"

    def test_type_required(self, client):
        response = client.get("/api/data")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_unknown_type(self, client):
        response = client.get("/api/data", params={"type": "tickets"})

        assert response.status_code == 400
        assert "Valid types: clients, invoices" in response.json()["error"]["message"]

    def test_malformed_id(self, client):
        response = client.get("/api/data", params={"type": "invoices", "id": "not-a-uuid"})

        assert response.status_code == 400

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 501}, {"offset": -1}])
    def test_paging_bounds(self, client, params):
        response = client.get("/api/data", params={"type": "invoices", **params})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestClients:

    def test_list(self, client, test_client):
        response = client.get("/api/data", params={"type": "clients"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [c["name"] for c in body["data"]] == ["Grace Hopper"]

    def test_by_id_with_invoices(self, client, test_client, invoice):
        response = client.get(
            "/api/data",
            params={"type": "clients", "id": str(test_client.id), "include": "invoices"},
        )

        data = response.json()["data"]
        assert data["email"] == "grace@example.com"
        assert [i["invoice_number"] for i in data["invoices"]] == [invoice.invoice_number]
        assert data["invoices"][0]["total"] == "100.00"

    def test_unknown_client_404(self, client, as_test_user):
        response = client.get("/api/data", params={"type": "clients", "id": str(uuid4())})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestInvoices:

    def test_list_rounded_with_overdue_flag(self, client, make_invoice):
        make_invoice(tax_rate="8.5", due_at=now_utc() - timedelta(days=1))

        response = client.get("/api/data", params={"type": "invoices"})

        [data] = response.json()["data"]
        assert data["total"] == "108.50"
        assert data["status"] == "unpaid"
        assert data["is_overdue"] is True

    def test_filter(self, client, make_invoice, invoice_service):
        overdue = make_invoice(due_at=now_utc() - timedelta(days=1))
        paid = make_invoice()
        invoice_service.mark_paid(paid.id)

        overdue_ids = [i["id"] for i in client.get(
            "/api/data", params={"type": "invoices", "filter": "overdue"},
        ).json()["data"]]
        paid_ids = [i["id"] for i in client.get(
            "/api/data", params={"type": "invoices", "filter": "paid"},
        ).json()["data"]]

        assert overdue_ids == [str(overdue.id)]
        assert paid_ids == [str(paid.id)]

    def test_unknown_filter_400(self, client):
        response = client.get("/api/data", params={"type": "invoices", "filter": "void"})

        assert response.status_code == 400

    def test_by_client(self, client, invoice, test_client):
        response = client.get("/api/data", params={"type": "invoices", "client_id": str(test_client.id)})

        assert [i["id"] for i in response.json()["data"]] == [str(invoice.id)]

    def test_by_id_with_payments_and_history(self, client, invoice, payment_service, audit):
        payment_service.submit_payment(invoice.public_token, {
            "cardholder_name": "Grace Hopper",
            "card_number": "4242424242424242",
            "expiry_date": "12/30",
            "cvv": "123",
            "email": "grace@example.com",
            "billing_address": "1 Compiler Road",
        })
        audit.get_entity_history.return_value = [
            {"action": "status_change", "entity_id": invoice.id, "created_at": now_utc()},
        ]

        response = client.get(
            "/api/data",
            params={"type": "invoices", "id": str(invoice.id), "include": "payments,history"},
        )

        data = response.json()["data"]
        assert data["status"] == "paid"
        assert [p["status"] for p in data["payments"]] == ["succeeded"]
        assert Decimal(data["payments"][0]["amount"]) == Decimal("100")
        assert data["history"][0]["entity_id"] == str(invoice.id)

    def test_other_accounts_invoice_404(self, client, invoice, mock_session_manager, test_user_b_id):
        now = now_utc()
        mock_session_manager.validate_session.return_value = Session(
            token="test-token", user_id=test_user_b_id,
            created_at=now, expires_at=now + timedelta(hours=1), last_activity_at=now,
        )

        response = client.get("/api/data", params={"type": "invoices", "id": str(invoice.id)})

        assert response.status_code == 404
