# seller/services/stats.py

"""
SELLER DASHBOARD AGGREGATES (incremental)

Each product contributes to the running totals; a mirror change subtracts
the old contribution and adds the new one, so a status push does not
re-scan the whole product list.

- total_sales:       price * quantity over sale listings with a price
- total_sold_value:  price * quantity over sold products with a price
- average_price:     mean price over products priced > 0
- recent_products:   created within the last RECENT_DAYS (computed at read)

Quantity 0 counts as 1 in the value sums.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from django.conf import settings

from marketplace.money import ZERO, money
from seller.services.products import (
    STATUS_FOR_APPROVAL,
    STATUS_LISTED,
    STATUS_REJECTED,
    STATUS_SOLD,
    SellerProduct,
)

_STATUS_BUCKETS = {
    STATUS_LISTED: "approved",
    STATUS_FOR_APPROVAL: "pending",
    STATUS_REJECTED: "rejected",
    STATUS_SOLD: "sold",
}


def _recent_days() -> int:
    cfg = getattr(settings, "SELLER_DASHBOARD", {}) or {}
    return int(cfg.get("RECENT_DAYS", 7))


@dataclass(frozen=True)
class DashboardStats:
    total_sales: Decimal = ZERO
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    sold: int = 0
    total_products: int = 0
    total_sold_value: Decimal = ZERO
    category_counts: dict = field(default_factory=dict)
    top_category: str | None = None
    recent_products: int = 0
    average_price: Decimal = ZERO


@dataclass(frozen=True)
class _Contribution:
    sales: Decimal
    sold_value: Decimal
    priced: Decimal | None
    bucket: str | None
    category: str
    created_at: datetime | None


def _contribution(product: SellerProduct) -> _Contribution:
    units = Decimal(product.quantity or 1)
    has_price = product.price is not None
    return _Contribution(
        sales=product.price * units if has_price and product.listed_as == "sale" else ZERO,
        sold_value=product.price * units if has_price and product.status == STATUS_SOLD else ZERO,
        priced=product.price if has_price and product.price > 0 else None,
        bucket=_STATUS_BUCKETS.get(product.status),
        category=product.category or "Other",
        created_at=product.created_at or product.updated_at,
    )


class StatsAggregator:
    def __init__(self, products: Iterable[SellerProduct] = ()):
        self.reset(products)

    def reset(self, products: Iterable[SellerProduct]) -> None:
        self._by_id: dict[str, _Contribution] = {}
        self._sales = ZERO
        self._sold_value = ZERO
        self._price_sum = ZERO
        self._price_count = 0
        self._buckets: Counter = Counter()
        self._categories: Counter = Counter()
        for product in products:
            self.upsert(product)

    def upsert(self, product: SellerProduct) -> None:
        previous = self._by_id.get(product.id)
        if previous is not None:
            self._apply(previous, sign=-1)
        contribution = _contribution(product)
        self._by_id[product.id] = contribution
        self._apply(contribution, sign=1)

    def remove(self, product_id: str) -> None:
        previous = self._by_id.pop(str(product_id), None)
        if previous is not None:
            self._apply(previous, sign=-1)

    def _apply(self, c: _Contribution, *, sign: int) -> None:
        self._sales += sign * c.sales
        self._sold_value += sign * c.sold_value
        if c.priced is not None:
            self._price_sum += sign * c.priced
            self._price_count += sign
        if c.bucket:
            self._buckets[c.bucket] += sign
        self._categories[c.category] += sign
        if self._categories[c.category] <= 0:
            del self._categories[c.category]

    def snapshot(self, *, now: datetime) -> DashboardStats:
        cutoff = now - timedelta(days=_recent_days())
        recent = sum(1 for c in self._by_id.values() if c.created_at is not None and c.created_at >= cutoff)

        top = self._categories.most_common(1)
        average = money(self._price_sum / self._price_count) if self._price_count else ZERO

        return DashboardStats(
            total_sales=money(self._sales),
            approved=self._buckets["approved"],
            pending=self._buckets["pending"],
            rejected=self._buckets["rejected"],
            sold=self._buckets["sold"],
            total_products=len(self._by_id),
            total_sold_value=money(self._sold_value),
            category_counts=dict(self._categories),
            top_category=top[0][0] if top else None,
            recent_products=recent,
            average_price=average,
        )
