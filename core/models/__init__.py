"""Core domain models."""

from core.models.client import Client, ClientCreate, ClientUpdate, ClientSnapshot
from core.models.invoice import (
    Invoice, InvoiceCreate, InvoiceItem, InvoiceItemCreate,
    InvoiceView, InvoiceItemView,
    InvoiceStatus, DiscountType, PaymentMethod,
)
from core.models.payment import (
    PaymentAttempt, PaymentAttemptStatus, PaymentResult,
    CardPaymentDetails, PayPalPaymentDetails, BankTransferPaymentDetails,
)

__all__ = [
    # Client
    "Client", "ClientCreate", "ClientUpdate", "ClientSnapshot",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceItem", "InvoiceItemCreate",
    "InvoiceView", "InvoiceItemView",
    "InvoiceStatus", "DiscountType", "PaymentMethod",
    # Payment
    "PaymentAttempt", "PaymentAttemptStatus", "PaymentResult",
    "CardPaymentDetails", "PayPalPaymentDetails", "BankTransferPaymentDetails",
]
