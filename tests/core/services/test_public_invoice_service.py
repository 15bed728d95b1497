"""Tests for PublicInvoiceService - token resolution without a session."""

from datetime import timedelta
from decimal import Decimal

import pytest

from core.exceptions import InvoiceNotFoundError
from utils.timezone import now_utc
from utils.user_context import clear_current_user_id


class TestResolve:

    def test_valid_token_resolves(self, invoice, public_service):
        clear_current_user_id()

        resolved = public_service.resolve(invoice.public_token)

        assert resolved.id == invoice.id
        assert str(resolved.id) != invoice.public_token

    def test_never_issued_token_is_none(self, invoice, public_service):
        assert public_service.resolve("A" * 43) is None

    @pytest.mark.parametrize("token", ["", "short", "has spaces in it!!", "x" * 200, "../../etc/passwd"])
    def test_malformed_token_is_none(self, public_service, token):
        assert public_service.resolve(token) is None

    def test_exact_match_only(self, invoice, public_service):
        swapped = invoice.public_token.swapcase()
        if swapped != invoice.public_token:
            assert public_service.resolve(swapped) is None
        assert public_service.resolve(invoice.public_token[:-1]) is None

    def test_invoice_id_is_not_a_token(self, invoice, public_service):
        assert public_service.resolve(str(invoice.id)) is None

    def test_deleted_invoice_stops_resolving(self, invoice, invoice_service, public_service):
        invoice_service.delete(invoice.id)

        assert public_service.resolve(invoice.public_token) is None

    def test_resolves_across_accounts(self, invoice, public_service, as_test_user_b):
        """The visitor's own session, if any, doesn't matter."""
        assert public_service.resolve(invoice.public_token).id == invoice.id


class TestRequireAndView:

    def test_require_unknown_raises_without_echoing_token(self, public_service):
        token = "Z" * 43

        with pytest.raises(InvoiceNotFoundError) as exc_info:
            public_service.require(token)

        assert token not in str(exc_info.value)

    def test_malformed_and_unknown_look_identical(self, public_service):
        with pytest.raises(InvoiceNotFoundError) as malformed:
            public_service.require("bad token")
        with pytest.raises(InvoiceNotFoundError) as unknown:
            public_service.require("Z" * 43)

        assert str(malformed.value) == str(unknown.value)

    def test_view_is_rounded_and_flags_overdue(self, make_invoice, public_service):
        invoice = make_invoice(tax_rate="8.5", due_at=now_utc() - timedelta(days=1))
        clear_current_user_id()

        view = public_service.view(invoice.public_token)

        assert view.total == Decimal("108.50")
        assert view.is_overdue is True
        assert "id" not in view.public_dump()
