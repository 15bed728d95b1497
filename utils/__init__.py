"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, parse_iso
from utils.money import round_money, to_minor_units, format_currency, coerce_amount
from utils.user_context import (
    get_current_user_id,
    set_current_user_id,
    clear_current_user_id,
    current_user_id_or_none,
    user_context,
)
