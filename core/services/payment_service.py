"""
Payment service: public payment submission and payment links.

submit_payment is the one write a public token allows. Its own logic is
deliberately thin:
1. Resolve the token and refuse invoices that are already paid
2. Validate the payment details' shape for the invoice's payment method
3. Ask the gateway to charge (errors and timeouts count as a decline)
4. Record the attempt and feed the outcome into the invoice lifecycle

Nothing is retried automatically. A declined or failed invoice stays
payable and the client can simply submit again.
"""

import logging
from uuid import UUID, uuid4

from pydantic import BaseModel, ValidationError

from clients.payment_gateway import ChargeRequest, ChargeResult, PaymentGateway, PaymentGatewayError
from core.config import InvoicingConfig
from core.exceptions import (
    InvoiceAlreadyPaidError,
    PaymentMethodNotSupportedError,
    PaymentValidationError,
)
from core.models import (
    Invoice, PaymentMethod,
    PaymentAttempt, PaymentAttemptStatus, PaymentResult,
    CardPaymentDetails, PayPalPaymentDetails, BankTransferPaymentDetails,
)
from core.repositories import PaymentRepository
from core.services.invoice_service import InvoiceService
from core.services.public_invoice_service import PublicInvoiceService
from utils.money import to_minor_units
from utils.user_context import user_context
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Payment methods that can be paid through the public payment page, and
# the shape their details must have. Zelle and wire are settled outside
# the system and marked paid by hand.
PAYMENT_DETAILS_MODELS: dict[PaymentMethod, type[BaseModel]] = {
    PaymentMethod.STRIPE: CardPaymentDetails,
    PaymentMethod.PAYPAL: PayPalPaymentDetails,
    PaymentMethod.BANK_TRANSFER: BankTransferPaymentDetails,
}

GENERIC_FAILURE = "Payment processing failed. Please try again."


def validate_payment_details(method: PaymentMethod, details: dict) -> BaseModel:
    """
    Check payment details against the shape required by `method`.

    Raises:
        PaymentMethodNotSupportedError: Method can't be paid online
        PaymentValidationError: With one message per offending field
    """
    model = PAYMENT_DETAILS_MODELS.get(method)
    if model is None:
        raise PaymentMethodNotSupportedError(method.value)

    try:
        return model.model_validate(details)
    except ValidationError as e:
        fields = {}
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "__root__"
            fields.setdefault(field, error["msg"].removeprefix("Value error, "))
        raise PaymentValidationError(fields) from None


class PaymentService:
    """Service for taking payments against invoices."""

    def __init__(
        self,
        invoice_service: InvoiceService,
        public_invoices: PublicInvoiceService,
        payments: PaymentRepository,
        gateways: dict[PaymentMethod, PaymentGateway],
        link_gateway: PaymentGateway | None = None,
        config: InvoicingConfig | None = None,
    ):
        """
        Args:
            invoice_service: Applies lifecycle transitions
            public_invoices: Resolves public tokens
            payments: Payment attempt history
            gateways: Gateway per payment method; methods missing here
                can't be paid online
            link_gateway: Gateway that issues hosted payment links
        """
        self.invoice_service = invoice_service
        self.public_invoices = public_invoices
        self.payments = payments
        self.gateways = gateways
        self.link_gateway = link_gateway
        self.config = config or InvoicingConfig()

    def submit_payment(self, token: str, details: dict) -> PaymentResult:
        """
        Pay the invoice behind a public token.

        Args:
            token: Public invoice token
            details: Payment form fields for the invoice's payment method

        Returns:
            PaymentResult; success=False on decline, gateway error or timeout

        Raises:
            InvoiceNotFoundError: Token doesn't resolve
            InvoiceAlreadyPaidError: Invoice already paid, checked before any
                charge and again when the outcome is persisted
            PaymentMethodNotSupportedError: Method can't be paid online
            PaymentValidationError: Details have the wrong shape
        """
        invoice = self.public_invoices.require(token)

        # The visitor has no session; everything below runs as the owning account.
        with user_context(invoice.user_id):
            return self._pay(invoice, details)

    def _pay(self, invoice: Invoice, details: dict) -> PaymentResult:
        if invoice.is_paid:
            raise InvoiceAlreadyPaidError(invoice.invoice_number)

        validated = validate_payment_details(invoice.payment_method, details)

        gateway = self.gateways.get(invoice.payment_method)
        if gateway is None:
            raise PaymentMethodNotSupportedError(invoice.payment_method.value)

        request = ChargeRequest(
            amount_minor=to_minor_units(invoice.total),
            currency=invoice.currency,
            description=f"Invoice {invoice.invoice_number}",
            method=invoice.payment_method.value,
            details=validated.model_dump(mode="json"),
            metadata={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
            },
        )

        try:
            result = gateway.charge(request)
        except PaymentGatewayError as e:
            logger.warning(
                "Gateway %s failed for invoice %s: %s",
                gateway.name, invoice.invoice_number, e,
            )
            result = ChargeResult(success=False, error=GENERIC_FAILURE)

        self.payments.add(PaymentAttempt(
            id=uuid4(),
            user_id=invoice.user_id,
            invoice_id=invoice.id,
            gateway=gateway.name,
            amount=invoice.total,
            currency=invoice.currency,
            status=PaymentAttemptStatus.SUCCEEDED if result.success else PaymentAttemptStatus.FAILED,
            transaction_id=result.transaction_id,
            error=result.error,
            created_at=now_utc(),
        ))

        updated = self.invoice_service.confirm_payment(invoice.id, result.success)

        logger.info(
            "Payment for invoice %s: %s",
            invoice.invoice_number, "succeeded" if result.success else "failed",
        )

        return PaymentResult(
            success=result.success,
            status=updated.status,
            transaction_id=result.transaction_id,
            error=None if result.success else (result.error or GENERIC_FAILURE),
        )

    def create_payment_link(self, invoice_id: UUID) -> str:
        """
        Hosted checkout link for an invoice's total.

        Raises:
            InvoiceNotFoundError: If not found
            InvoiceAlreadyPaidError: If already paid
            PaymentMethodNotSupportedError: If no link gateway is configured
            PaymentGatewayError: If the gateway fails
        """
        invoice = self.invoice_service.require(invoice_id)
        if invoice.is_paid:
            raise InvoiceAlreadyPaidError(invoice.invoice_number)

        if self.link_gateway is None:
            raise PaymentMethodNotSupportedError("payment-link")

        return self.link_gateway.create_payment_link(
            to_minor_units(invoice.total),
            invoice.currency,
            f"Invoice {invoice.invoice_number} for {invoice.client.display_name}",
        )

    def list_payments(self, invoice_id: UUID) -> list[PaymentAttempt]:
        """
        Payment attempts for an invoice, newest first.

        Raises:
            InvoiceNotFoundError: If not found
        """
        invoice = self.invoice_service.require(invoice_id)
        return self.payments.list_for_invoice(invoice.id)
