# checkout/services/card_validation.py

"""
CARD VALIDATION

Runs only when payment mode is DebitCredit; any other mode is always valid.

- holder name: non-empty after trim
- number: strip non-digits; 13..19 digits; Luhn (mod-10) must pass
- expiry: MM/YY; month 1..12; (month, year) not strictly before the current
  (month, year) -> the current month is still valid
- cvc: 3..4 digits

Returns field-keyed errors; an empty dict means valid.
"""

from __future__ import annotations

import re
from datetime import date

from django.utils import timezone

from checkout.services.payment_selection import CardDetails, PaymentMode

_EXPIRY_RE = re.compile(r"^(\d{2})/(\d{2})$")
_CVC_RE = re.compile(r"^\d{3,4}$")


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def luhn_valid(number: str) -> bool:
    digits = digits_only(number)
    if not digits:
        return False

    total = 0
    for idx, ch in enumerate(reversed(digits)):
        d = int(ch)
        if idx % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def _expiry_error(expiry: str, today: date) -> str | None:
    m = _EXPIRY_RE.match((expiry or "").strip())
    if not m:
        return "Use MM/YY format"

    month, year = int(m.group(1)), 2000 + int(m.group(2))
    if month < 1 or month > 12:
        return "Invalid month"

    if (year, month) < (today.year, today.month):
        return "Card has expired"
    return None


def validate_card(card: CardDetails, *, payment_mode: PaymentMode, today: date | None = None) -> dict[str, str]:
    if payment_mode is not PaymentMode.DEBIT_CREDIT:
        return {}

    today = today or timezone.localdate()
    errors: dict[str, str] = {}

    if not (card.holder_name or "").strip():
        errors["holder_name"] = "Cardholder name is required"

    number = digits_only(card.number)
    if not number:
        errors["number"] = "Card number is required"
    elif len(number) < 13 or len(number) > 19:
        errors["number"] = "Card number must be 13 to 19 digits"
    elif not luhn_valid(number):
        errors["number"] = "Invalid card number"

    expiry_error = _expiry_error(card.expiry, today)
    if expiry_error:
        errors["expiry"] = expiry_error

    if not _CVC_RE.match((card.cvc or "").strip()):
        errors["cvc"] = "CVC must be 3 or 4 digits"

    return errors
