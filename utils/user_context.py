"""
Which account a unit of work belongs to.

Authenticated requests get the account from their session (AuthMiddleware).
Public invoice requests have no session: once a token resolves, work on that
invoice runs as the account that owns it. PostgresClient copies the value
into app.current_user_id on every query, so Row Level Security follows it.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import UUID

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> UUID:
    """
    Account that owns the current unit of work.

    Raises:
        RuntimeError: No account is set. Account-scoped code (clients,
            invoices, payments) was reached outside a request or user_context().
    """
    user_id = _current_user_id.get()
    if user_id is None:
        raise RuntimeError(
            "No user context set: account-scoped invoicing code reached "
            "without a session or an owning account."
        )
    return user_id


def current_user_id_or_none() -> UUID | None:
    """Bound account, or None for a caller with no session."""
    return _current_user_id.get()


def set_current_user_id(user_id: UUID) -> None:
    """Bind the session's account for the rest of the request."""
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    """Unbind the account. AuthMiddleware calls this in its finally block."""
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: UUID):
    """
    Act as `user_id` for the duration of the block.

    Whatever was bound before (another account, or nothing for a public
    caller) is bound again on exit, including when the block raises.

        with user_context(invoice.user_id):
            invoice_service.confirm_payment(invoice.id, success=True)
    """
    token = _current_user_id.set(user_id)
    try:
        yield user_id
    finally:
        _current_user_id.reset(token)
