# orders/services/placed_order.py

"""
PLACED ORDER (read-only projection of an upstream order)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from django.utils.dateparse import parse_datetime

from marketplace.money import ZERO, money

logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    PREPARING_TO_SHIP = "Preparing to Ship"
    SHIPPED_OUT = "Shipped out"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    TO_RATE = "To Rate"
    CANCELLED = "Cancelled"


def _money_or_zero(v) -> Decimal:
    try:
        return money(v)
    except ValueError:
        return ZERO


def _timestamp(v) -> datetime | None:
    if not v:
        return None
    if isinstance(v, datetime):
        return v
    try:
        return parse_datetime(str(v))
    except ValueError:
        return None


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    image: str | None = None
    location: str | None = None
    category: str | None = None

    @property
    def line_total(self) -> Decimal:
        return money(self.unit_price * Decimal(self.quantity))

    @classmethod
    def from_payload(cls, raw: dict) -> "OrderItem":
        try:
            quantity = int(raw.get("quantity") or 0)
        except (TypeError, ValueError):
            quantity = 0
        return cls(
            product_id=str(raw.get("productId") or ""),
            name=str(raw.get("name") or ""),
            quantity=quantity,
            unit_price=_money_or_zero(raw.get("price")),
            image=raw.get("image") or None,
            location=raw.get("location") or None,
            category=raw.get("category") or None,
        )


@dataclass(frozen=True)
class PlacedOrder:
    order_id: str
    status: OrderStatus
    total_amount: Decimal
    shipping_fee: Decimal
    payment_method: str
    delivery_method: str
    items: tuple[OrderItem, ...] = field(default_factory=tuple)
    tracking_number: str | None = None
    shipping_address: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def display_subtotal(self) -> Decimal:
        """Display only; the upstream total is authoritative."""
        return money(self.total_amount - self.shipping_fee)

    @classmethod
    def from_payload(cls, raw: dict) -> "PlacedOrder":
        raw_status = raw.get("status") or OrderStatus.PREPARING_TO_SHIP.value
        try:
            status = OrderStatus(raw_status)
        except ValueError:
            logger.warning("Unknown order status from upstream", extra={"status": raw_status})
            status = OrderStatus.PREPARING_TO_SHIP

        return cls(
            order_id=str(raw.get("orderId") or raw.get("_id") or ""),
            status=status,
            total_amount=_money_or_zero(raw.get("totalAmount")),
            shipping_fee=_money_or_zero(raw.get("shippingFee")),
            payment_method=str(raw.get("paymentMethod") or ""),
            delivery_method=str(raw.get("deliveryMethod") or ""),
            items=tuple(OrderItem.from_payload(i) for i in raw.get("items") or [] if isinstance(i, dict)),
            tracking_number=raw.get("trackingNumber") or None,
            shipping_address=raw.get("shippingAddress") or None,
            notes=raw.get("notes") or None,
            created_at=_timestamp(raw.get("createdAt")),
            updated_at=_timestamp(raw.get("updatedAt")),
        )
