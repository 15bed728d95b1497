"""
Invoice status lifecycle.

    unpaid --payment ok--> paid
    unpaid --payment failed--> failed
    failed --payment ok--> paid
    unpaid|failed --marked paid--> paid

Nothing leaves paid. Overdue is not a status: it is derived from
(status, due_at, now) by is_overdue() and never persisted.
"""

from datetime import datetime

from core.exceptions import InvalidStatusTransitionError, InvoiceAlreadyPaidError
from core.models.invoice import InvoiceStatus
from utils.timezone import to_utc

ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.UNPAID: frozenset({InvoiceStatus.PAID, InvoiceStatus.FAILED}),
    InvoiceStatus.FAILED: frozenset({InvoiceStatus.PAID}),
    InvoiceStatus.PAID: frozenset(),
}

# Statuses a payment may be taken from. Also the precondition of every
# conditional status write.
PAYABLE_STATUSES = frozenset({InvoiceStatus.UNPAID, InvoiceStatus.FAILED})


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: InvoiceStatus, target: InvoiceStatus) -> None:
    """
    Raise unless current -> target is allowed.

    Raises:
        InvoiceAlreadyPaidError: current is PAID
        InvalidStatusTransitionError: any other disallowed move
    """
    if can_transition(current, target):
        return
    if current == InvoiceStatus.PAID:
        raise InvoiceAlreadyPaidError()
    raise InvalidStatusTransitionError(current.value, target.value)


def payment_outcome_transition(current: InvoiceStatus, success: bool) -> InvoiceStatus:
    """
    Status an invoice moves to after a payment attempt.

    A failed retry on an already failed invoice stays failed.

    Raises:
        InvoiceAlreadyPaidError: Payments are never taken on a paid invoice
    """
    if current == InvoiceStatus.PAID:
        raise InvoiceAlreadyPaidError()

    if success:
        return InvoiceStatus.PAID
    if current == InvoiceStatus.FAILED:
        return InvoiceStatus.FAILED

    ensure_transition(current, InvoiceStatus.FAILED)
    return InvoiceStatus.FAILED


def manual_payment_transition(current: InvoiceStatus) -> InvoiceStatus | None:
    """
    Status after an administrator marks the invoice paid.

    Returns None when the invoice is already paid: marking it again is a
    no-op, not an error.
    """
    if current == InvoiceStatus.PAID:
        return None
    ensure_transition(current, InvoiceStatus.PAID)
    return InvoiceStatus.PAID


def is_overdue(status: InvoiceStatus, due_at: datetime | None, now: datetime) -> bool:
    """
    Whether an invoice counts as overdue at `now`.

    Only unpaid invoices with a due date strictly in the past are overdue.
    Failed invoices are reported as failed, not overdue.
    """
    if status != InvoiceStatus.UNPAID or due_at is None:
        return False
    return to_utc(due_at) < to_utc(now)
