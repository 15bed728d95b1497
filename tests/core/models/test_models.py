"""Tests for domain model validation."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from core.models import (
    BankTransferPaymentDetails,
    CardPaymentDetails,
    Client,
    ClientCreate,
    ClientSnapshot,
    ClientUpdate,
    DiscountType,
    Invoice,
    InvoiceCreate,
    InvoiceItem,
    InvoiceItemCreate,
    InvoiceStatus,
    InvoiceView,
    PaymentMethod,
)
from utils.timezone import now_utc


def _invoice(**overrides) -> Invoice:
    now = now_utc()
    invoice_id = uuid4()
    data = dict(
        id=invoice_id,
        user_id=uuid4(),
        client_id=uuid4(),
        client=ClientSnapshot(name="Grace", email="grace@example.com"),
        invoice_number="INV-20300101-0001",
        items=[InvoiceItem(
            id=uuid4(), invoice_id=invoice_id, position=0, description="Work",
            quantity=Decimal("3"), unit_price=Decimal("3.3333"), total=Decimal("9.9999"),
        )],
        subtotal=Decimal("9.9999"),
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("0"),
        discount_amount=Decimal("0"),
        tax_rate=Decimal("8.5"),
        tax_amount=Decimal("0.8499915"),
        total=Decimal("10.8498915"),
        currency="usd",
        status=InvoiceStatus.UNPAID,
        payment_method=PaymentMethod.STRIPE,
        notes=None,
        due_at=None,
        paid_at=None,
        public_token="x" * 43,
        created_at=now,
        updated_at=now,
    )
    data.update(overrides)
    return Invoice(**data)


class TestClientModels:

    def test_create_requires_name(self):
        with pytest.raises(ValidationError) as exc_info:
            ClientCreate(name="   ", email="a@example.com")

        assert exc_info.value.errors()[0]["loc"] == ("name",)

    def test_create_requires_valid_email(self):
        with pytest.raises(ValidationError) as exc_info:
            ClientCreate(name="Ada", email="not-an-email")

        assert exc_info.value.errors()[0]["loc"] == ("email",)

    def test_create_strips_whitespace(self):
        client = ClientCreate(name="  Ada  ", email="ada@example.com")
        assert client.name == "Ada"
        assert client.address == ""

    def test_update_all_optional(self):
        assert ClientUpdate().model_dump(exclude_unset=True) == {}

    def test_update_company_can_be_cleared(self):
        assert ClientUpdate(company=None).model_dump(exclude_unset=True) == {"company": None}

    @pytest.mark.parametrize("field", ["name", "email", "address"])
    def test_update_rejects_clearing_required_field(self, field):
        with pytest.raises(ValidationError, match="cannot be cleared"):
            ClientUpdate(**{field: None})

    def test_snapshot_display_name_prefers_company(self):
        snapshot = ClientSnapshot(name="Ada", company="Engines Ltd", email="ada@example.com")
        assert snapshot.display_name == "Engines Ltd"
        assert snapshot.model_copy(update={"company": None}).display_name == "Ada"

    def test_snapshot_copies_contact_details(self):
        now = now_utc()
        client = Client(
            id=uuid4(), user_id=uuid4(), name="Ada", company=None,
            email="ada@example.com", address="12 Loom St", created_at=now, updated_at=now,
        )
        assert client.snapshot() == ClientSnapshot(
            name="Ada", company=None, email="ada@example.com", address="12 Loom St",
        )


class TestInvoiceModels:

    def test_item_coerces_bad_numbers_to_zero(self):
        item = InvoiceItemCreate(description="x", quantity="lots", unit_price=-3)
        assert item.quantity == Decimal(0)
        assert item.unit_price == Decimal(0)

    def test_create_coerces_discount_and_tax(self):
        data = InvoiceCreate(client_id=uuid4(), discount_value="", tax_rate="8.5")
        assert data.discount_value == Decimal(0)
        assert data.tax_rate == Decimal("8.5")

    def test_create_rejects_bad_currency(self):
        with pytest.raises(ValidationError):
            InvoiceCreate(client_id=uuid4(), currency="USD")

    def test_create_rejects_unknown_payment_method(self):
        with pytest.raises(ValidationError):
            InvoiceCreate(client_id=uuid4(), payment_method="bitcoin")

    def test_create_date_only_due_at_is_utc_midnight(self):
        data = InvoiceCreate(client_id=uuid4(), due_at="2020-01-01")
        assert data.due_at == datetime(2020, 1, 1, tzinfo=timezone.utc)

    def test_create_due_at_offset_converted_to_utc(self):
        data = InvoiceCreate(client_id=uuid4(), due_at="2020-01-01T02:00:00+02:00")
        assert data.due_at == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert data.due_at.tzinfo == timezone.utc

    def test_stored_naive_due_at_is_utc(self):
        assert _invoice(due_at=datetime(2020, 1, 1)).due_at.tzinfo == timezone.utc

    def test_paid_requires_paid_at(self):
        with pytest.raises(ValidationError, match="paid_at"):
            _invoice(status=InvoiceStatus.PAID)

    def test_unpaid_rejects_paid_at(self):
        with pytest.raises(ValidationError, match="cannot have paid_at"):
            _invoice(paid_at=now_utc())

    def test_is_paid(self):
        assert _invoice(status=InvoiceStatus.PAID, paid_at=now_utc()).is_paid
        assert not _invoice().is_paid


class TestInvoiceView:

    def test_rounds_money_only_in_view(self):
        invoice = _invoice()
        view = InvoiceView.from_invoice(invoice, is_overdue=False)

        assert invoice.total == Decimal("10.8498915")
        assert view.total == Decimal("10.85")
        assert view.tax_amount == Decimal("0.85")
        assert view.items[0].unit_price == Decimal("3.33")
        assert view.items[0].total == Decimal("10.00")

    def test_carries_overdue_flag(self):
        invoice = _invoice(due_at=now_utc() - timedelta(days=1))
        assert InvoiceView.from_invoice(invoice, is_overdue=True).is_overdue is True

    def test_public_dump_hides_internal_ids(self):
        view = InvoiceView.from_invoice(_invoice(), is_overdue=False)
        dumped = view.public_dump()

        assert "id" not in dumped
        assert "client_id" not in dumped
        assert "public_token" not in dumped
        assert dumped["invoice_number"] == "INV-20300101-0001"
        assert dumped["total"] == "10.85"


class TestPaymentDetails:

    def test_card_number_spaces_stripped(self):
        card = CardPaymentDetails(
            cardholder_name="Ada", card_number="4242-4242 4242-4242",
            expiry_date="01/31", cvv="1234", email="ada@example.com",
            billing_address="1 Loom St",
        )
        assert card.card_number == "4242424242424242"

    @pytest.mark.parametrize("field,value", [
        ("card_number", "4242"),
        ("card_number", "4242abcd42424242"),
        ("expiry_date", "13/30"),
        ("expiry_date", "1230"),
        ("cvv", "12"),
        ("email", "nope"),
        ("billing_address", ""),
    ])
    def test_card_rejects_bad_field(self, field, value):
        data = dict(
            cardholder_name="Ada", card_number="4242424242424242",
            expiry_date="12/30", cvv="123", email="ada@example.com",
            billing_address="1 Loom St",
        )
        data[field] = value

        with pytest.raises(ValidationError) as exc_info:
            CardPaymentDetails(**data)

        assert exc_info.value.errors()[0]["loc"] == (field,)

    def test_bank_transfer_routing_number_is_nine_digits(self):
        with pytest.raises(ValidationError):
            BankTransferPaymentDetails(
                account_holder_name="Ada", bank_account="000123456789",
                routing_number="12345", email="ada@example.com",
            )
