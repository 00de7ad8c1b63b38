# cart/services/remote.py

"""
UPSTREAM CART COLLABORATOR

GET    /api/carts                 -> {items: [{productId|id, name, price|priceNum, quantity, image}]}
PUT    /api/carts/item/<id>       {quantity}
DELETE /api/carts/item/<id>
"""

from __future__ import annotations

import logging

from cart.services.cart_store import CartLine, CartRemote
from marketplace.client import MarketplaceClient, quote_id
from marketplace.money import money

logger = logging.getLogger(__name__)


def parse_cart_line(raw: dict) -> CartLine | None:
    """Upstream line -> CartLine. Lines with no id or a non-positive quantity are skipped."""
    line_id = raw.get("productId") or raw.get("id") or raw.get("_id")
    if line_id in (None, ""):
        return None

    try:
        quantity = int(raw.get("quantity") or 0)
    except (TypeError, ValueError):
        quantity = 0
    if quantity <= 0:
        return None

    price = raw.get("priceNum")
    if price in (None, ""):
        price = raw.get("price")
    try:
        unit_price = money(price)
    except ValueError:
        logger.warning("Unparseable cart line price", extra={"line_id": line_id, "price": price})
        unit_price = money(0)

    return CartLine(
        id=str(line_id),
        name=str(raw.get("name") or raw.get("title") or ""),
        unit_price=unit_price,
        quantity=quantity,
        thumbnail_url=raw.get("image") or raw.get("thumbnailUrl") or None,
    )


class HttpCartRemote(CartRemote):
    def __init__(self, *, client: MarketplaceClient):
        self.client = client

    def fetch_lines(self) -> list[CartLine]:
        data = self.client.get("/api/carts")
        items = data.get("items") if isinstance(data, dict) else data
        lines = []
        for raw in items or []:
            if not isinstance(raw, dict):
                continue
            line = parse_cart_line(raw)
            if line is not None:
                lines.append(line)
        return lines

    def update_quantity(self, line_id: str, quantity: int) -> None:
        self.client.put(f"/api/carts/item/{quote_id(line_id)}", {"quantity": int(quantity)})

    def remove(self, line_id: str) -> None:
        self.client.delete(f"/api/carts/item/{quote_id(line_id)}")
