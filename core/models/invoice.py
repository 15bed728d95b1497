"""Invoice domain models.

Money is carried as Decimal at full precision and stored as NUMERIC.
Nothing is rounded until an InvoiceView is built for presentation.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from core.models.client import ClientSnapshot
from utils.money import coerce_amount, round_money
from utils.timezone import assume_utc


class InvoiceStatus(str, Enum):
    """Stored invoice status. Overdue is derived, never stored."""

    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PaymentMethod(str, Enum):
    """How the client is expected to pay. Informational for zelle and wire."""

    STRIPE = "stripe"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank-transfer"
    ZELLE = "zelle"
    WIRE = "wire"


class InvoiceItemCreate(BaseModel):
    """
    One billable row as entered on the invoice form.

    Quantity and unit price accept whatever the form sends; anything that
    isn't a non-negative number becomes 0 instead of failing the request.
    """

    description: str = Field("", max_length=500)
    quantity: Decimal = Decimal(0)
    unit_price: Decimal = Decimal(0)

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def coerce_form_number(cls, value):
        return coerce_amount(value)


class InvoiceItem(BaseModel):
    """Line item as stored. Owned by exactly one invoice."""

    id: UUID
    invoice_id: UUID
    position: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal

    model_config = {"from_attributes": True}


class InvoiceCreate(BaseModel):
    """Data required to create an invoice."""

    client_id: UUID
    items: list[InvoiceItemCreate] = Field(default_factory=list)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Decimal(0)
    tax_rate: Decimal = Decimal(0)
    currency: str | None = Field(None, pattern="^[a-z]{3}$")
    payment_method: PaymentMethod = PaymentMethod.STRIPE
    notes: str | None = Field(None, max_length=5000)
    due_at: datetime | None = None

    @field_validator("discount_value", "tax_rate", mode="before")
    @classmethod
    def coerce_form_number(cls, value):
        return coerce_amount(value)

    @field_validator("due_at")
    @classmethod
    def due_at_in_utc(cls, value: datetime | None) -> datetime | None:
        return assume_utc(value)


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: UUID
    user_id: UUID
    client_id: UUID
    client: ClientSnapshot
    invoice_number: str
    items: list[InvoiceItem] = Field(default_factory=list)
    subtotal: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    currency: str
    status: InvoiceStatus
    payment_method: PaymentMethod
    notes: str | None
    due_at: datetime | None
    paid_at: datetime | None
    public_token: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("due_at")
    @classmethod
    def due_at_in_utc(cls, value: datetime | None) -> datetime | None:
        return assume_utc(value)

    @model_validator(mode="after")
    def paid_at_matches_status(self) -> "Invoice":
        """paid_at is set if and only if the invoice is paid."""
        if self.status == InvoiceStatus.PAID and self.paid_at is None:
            raise ValueError("Paid invoice must have paid_at")
        if self.status != InvoiceStatus.PAID and self.paid_at is not None:
            raise ValueError(f"Invoice with status '{self.status.value}' cannot have paid_at")
        return self

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID


class InvoiceItemView(BaseModel):
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal


class InvoiceView(BaseModel):
    """
    Invoice as shown to people: cents-rounded money plus the overdue flag.

    Public callers get this with PUBLIC_EXCLUDE applied.
    """

    PUBLIC_EXCLUDE: ClassVar[set[str]] = {"id", "client_id", "public_token"}

    id: UUID
    client_id: UUID
    client: ClientSnapshot
    invoice_number: str
    items: list[InvoiceItemView]
    subtotal: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    currency: str
    status: InvoiceStatus
    is_overdue: bool
    payment_method: PaymentMethod
    notes: str | None
    due_at: datetime | None
    paid_at: datetime | None
    public_token: str
    created_at: datetime

    @classmethod
    def from_invoice(cls, invoice: Invoice, is_overdue: bool) -> "InvoiceView":
        return cls(
            id=invoice.id,
            client_id=invoice.client_id,
            client=invoice.client,
            invoice_number=invoice.invoice_number,
            items=[
                InvoiceItemView(
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=round_money(item.unit_price),
                    total=round_money(item.total),
                )
                for item in invoice.items
            ],
            subtotal=round_money(invoice.subtotal),
            discount_type=invoice.discount_type,
            discount_value=invoice.discount_value,
            discount_amount=round_money(invoice.discount_amount),
            tax_rate=invoice.tax_rate,
            tax_amount=round_money(invoice.tax_amount),
            total=round_money(invoice.total),
            currency=invoice.currency,
            status=invoice.status,
            is_overdue=is_overdue,
            payment_method=invoice.payment_method,
            notes=invoice.notes,
            due_at=invoice.due_at,
            paid_at=invoice.paid_at,
            public_token=invoice.public_token,
            created_at=invoice.created_at,
        )

    def public_dump(self) -> dict:
        """JSON-ready dict for unauthenticated callers, without internal ids."""
        return self.model_dump(mode="json", exclude=self.PUBLIC_EXCLUDE)
