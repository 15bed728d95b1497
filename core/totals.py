"""
Invoice totals: subtotal, discount, tax, total.

Pure functions over Decimal. The discount comes off the subtotal first and
tax is charged on what remains; nothing is rounded between steps, so the
only rounding an invoice ever sees happens when it is presented.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from core.models.invoice import DiscountType
from utils.money import coerce_amount

ZERO = Decimal(0)
HUNDRED = Decimal(100)


class PricedLine(Protocol):
    quantity: Decimal
    unit_price: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    """Unrounded amounts for one invoice."""

    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal


def line_total(quantity, unit_price) -> Decimal:
    """quantity × unit_price, with both clamped to >= 0 first."""
    return coerce_amount(quantity) * coerce_amount(unit_price)


def discount_amount(
    subtotal: Decimal,
    discount_type: DiscountType,
    discount_value,
) -> Decimal:
    """
    Discount for a subtotal, never more than the subtotal itself.

    Percentage discounts are discount_value percent of the subtotal;
    fixed discounts are discount_value as-is.
    """
    value = coerce_amount(discount_value)
    if DiscountType(discount_type) == DiscountType.PERCENTAGE:
        amount = subtotal * value / HUNDRED
    else:
        amount = value
    return min(amount, subtotal)


def compute_totals(
    items: Iterable[PricedLine],
    discount_type: DiscountType,
    discount_value,
    tax_rate,
) -> InvoiceTotals:
    """
    Compute an invoice's totals from its line items.

    Args:
        items: Anything with quantity and unit_price (order doesn't matter)
        discount_type: PERCENTAGE or FIXED
        discount_value: Percent or fixed amount; invalid input counts as 0
        tax_rate: Percent applied to the discounted subtotal

    Returns:
        InvoiceTotals with total = subtotal - discount + tax, never negative
    """
    subtotal = sum(
        (line_total(item.quantity, item.unit_price) for item in items),
        ZERO,
    )
    discount = discount_amount(subtotal, discount_type, discount_value)
    taxable = subtotal - discount
    tax = taxable * coerce_amount(tax_rate) / HUNDRED
    total = max(taxable + tax, ZERO)

    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax,
        total=total,
    )
