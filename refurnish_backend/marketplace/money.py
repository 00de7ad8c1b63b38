# marketplace/money.py

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(v) -> Decimal:
    """Coerce upstream numbers/strings into a 2dp Decimal; blanks become 0.00."""
    if v is None or v == "":
        return ZERO
    if isinstance(v, bool):
        raise ValueError("money value must be numeric")
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError(f"Invalid money value: {v!r}") from exc
