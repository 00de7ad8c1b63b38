# checkout/services/transaction_ids.py

"""
MOCK TRANSACTION IDS

<prefix>_<last 8 chars of the base36 millisecond timestamp>

Prefixes: cod_ (cash on delivery), txn_ (e-wallet), card_ (debit/credit).

Uniqueness is best-effort (timestamp-derived, no collision check). Fine for the
mocked gateway; NOT suitable for a real money-movement path.
"""

from __future__ import annotations

import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

COD_PREFIX = "cod"
EWALLET_PREFIX = "txn"
CARD_PREFIX = "card"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 expects a non-negative integer")
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_ALPHABET[rem])
    return "".join(reversed(out))


def synthesize_transaction_id(prefix: str, *, now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{prefix}_{to_base36(int(now_ms))[-8:]}"
