# cart/services/pricing.py

"""
CART PRICING

subtotal = sum(unit_price * quantity) over the selected lines
shipping = flat fee when at least one line is selected, else 0
total    = subtotal + shipping

Money is Decimal, 2dp.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from django.conf import settings

from marketplace.money import ZERO, money


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping_fee: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "shipping_fee": str(self.shipping_fee),
            "total": str(self.total),
        }


def flat_shipping_fee() -> Decimal:
    cfg = getattr(settings, "CHECKOUT", {}) or {}
    return money(cfg.get("SHIPPING_FEE", "150.00"))


def compute_totals(lines: Iterable) -> OrderTotals:
    lines = list(lines)
    subtotal = ZERO
    for line in lines:
        subtotal += money(line.unit_price) * Decimal(int(line.quantity))
    subtotal = money(subtotal)

    shipping = flat_shipping_fee() if lines else ZERO
    return OrderTotals(subtotal=subtotal, shipping_fee=shipping, total=money(subtotal + shipping))
