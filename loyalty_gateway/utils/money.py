"""Money conversion between decimal point amounts and integer cents"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Amount = Union[int, float, str, Decimal]

# Largest amount a BIGINT cents column can hold
MAX_CENTS = 2**63 - 1


def to_cents(amount: Amount) -> int:
    """
    Convert an amount like 729.98 to cents (72998), rounding half up.

    Arbitrarily large finite amounts convert exactly; callers decide whether
    they fit storage.

    Raises:
        ValueError: Amount is infinite or NaN
    """
    # str() keeps floats like 0.1 from dragging binary noise into Decimal
    value = Decimal(str(amount))
    if not value.is_finite():
        raise ValueError(f"Amount must be finite, got {amount!r}")
    return int(value.scaleb(2).to_integral_value(rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> float:
    """Convert cents back to a decimal point amount for JSON output"""
    return float(Decimal(cents) / 100)
