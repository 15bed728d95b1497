"""Typed exceptions for invoicing failures."""


class InvoicingError(Exception):
    """Base class for invoicing domain errors."""


class NotFoundError(InvoicingError, LookupError):
    """
    Entity does not exist, is soft deleted, or belongs to another account.

    Callers never learn which of the three it was.
    """


class ClientNotFoundError(NotFoundError):
    """Client not found for the current account."""


class InvoiceNotFoundError(NotFoundError):
    """Invoice not found by id, or public token did not resolve."""


class DuplicateInvoiceNumberError(InvoicingError):
    """Another invoice in the same account already uses this number."""

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(f"Invoice number {invoice_number} is already in use")


class InvalidStatusTransitionError(InvoicingError):
    """Requested status change is not allowed from the invoice's current status."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition invoice from '{current}' to '{target}'")


class InvoiceAlreadyPaidError(InvalidStatusTransitionError):
    """
    Invoice is already paid.

    Raised before any charge is attempted, and when a concurrent writer
    won the conditional status update.
    """

    def __init__(self, invoice_number: str | None = None):
        self.invoice_number = invoice_number
        self.current = "paid"
        self.target = "paid"
        label = f"Invoice {invoice_number}" if invoice_number else "Invoice"
        InvoicingError.__init__(self, f"{label} is already paid")


class PaymentMethodNotSupportedError(InvoicingError):
    """Invoice's payment method cannot be paid through the public payment page."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Payment method '{method}' cannot be paid online")


class PaymentValidationError(InvoicingError):
    """
    Payment details failed structural validation.

    Carries field-level messages so the payment form can highlight inputs.
    """

    def __init__(self, fields: dict[str, str]):
        self.fields = fields
        super().__init__("Payment details are invalid")
