"""Payment attempt and payment detail models.

Payment details are validated for shape only (presence, digit counts,
MM/YY, email format). Whether a card is real is the gateway's call.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr, field_validator

from core.models.invoice import InvoiceStatus


class PaymentAttemptStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PaymentAttempt(BaseModel):
    """One charge attempt against an invoice, successful or not."""

    id: UUID
    user_id: UUID
    invoice_id: UUID
    gateway: str
    amount: Decimal
    currency: str
    status: PaymentAttemptStatus
    transaction_id: str | None = None
    error: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CardPaymentDetails(BaseModel):
    """Card payment form (invoices with payment method 'stripe')."""

    cardholder_name: str = Field(..., min_length=1, max_length=255)
    card_number: str
    expiry_date: str = Field(..., pattern=r"^\d{2}/\d{2}$")
    cvv: str = Field(..., pattern=r"^\d{3,4}$")
    email: EmailStr
    billing_address: str = Field(..., min_length=1, max_length=1000)

    model_config = {"str_strip_whitespace": True}

    @field_validator("card_number")
    @classmethod
    def card_number_digits(cls, value: str) -> str:
        """Accept '4242 4242 4242 4242' as typed; store digits only."""
        digits = value.replace(" ", "").replace("-", "")
        if not digits.isdigit() or not 13 <= len(digits) <= 19:
            raise ValueError("Please enter a valid card number")
        return digits

    @field_validator("expiry_date")
    @classmethod
    def expiry_month_in_range(cls, value: str) -> str:
        if not 1 <= int(value[:2]) <= 12:
            raise ValueError("Please enter a valid expiry date (MM/YY)")
        return value


class PayPalPaymentDetails(BaseModel):
    paypal_email: EmailStr

    model_config = {"str_strip_whitespace": True}


class BankTransferPaymentDetails(BaseModel):
    """ACH-style transfer from the client's account."""

    account_holder_name: str = Field(..., min_length=1, max_length=255)
    bank_account: str = Field(..., pattern=r"^\d{4,17}$")
    routing_number: str = Field(..., pattern=r"^\d{9}$")
    email: EmailStr

    model_config = {"str_strip_whitespace": True}


class PaymentResult(BaseModel):
    """What the public payment page is told after a submission."""

    success: bool
    status: InvoiceStatus
    transaction_id: str | None = None
    error: str | None = None
