# orders/services/remote.py

"""
UPSTREAM ORDERS COLLABORATOR

POST /api/orders/place-order   {selectedItems, shippingAddress, notes?} -> {success, order, message}
GET  /api/orders/my-orders     -> [order, ...]
GET  /api/orders/<orderId>     -> order

The upstream order placement also prunes the ordered lines from the
persisted cart.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.client import MarketplaceClient, quote_id
from marketplace.exceptions import UpstreamError
from orders.services.placed_order import PlacedOrder


class OrdersRemote(ABC):
    @abstractmethod
    def place_order(self, *, selected_items: list[str], shipping_address: str, notes: str = "") -> PlacedOrder:
        ...

    @abstractmethod
    def list_mine(self) -> list[PlacedOrder]:
        ...

    @abstractmethod
    def get(self, order_id: str) -> PlacedOrder:
        ...


class HttpOrdersRemote(OrdersRemote):
    def __init__(self, *, client: MarketplaceClient):
        self.client = client

    def place_order(self, *, selected_items, shipping_address, notes=""):
        body = {
            "selectedItems": [str(i) for i in selected_items],
            "shippingAddress": shipping_address,
        }
        if notes:
            body["notes"] = notes

        data = self.client.post("/api/orders/place-order", body)
        order = data.get("order") if isinstance(data, dict) else None
        if not isinstance(order, dict):
            raise UpstreamError("Unexpected response while placing the order.", path="/api/orders/place-order")
        return PlacedOrder.from_payload(order)

    def list_mine(self):
        data = self.client.get("/api/orders/my-orders")
        if isinstance(data, dict):
            data = data.get("orders") or []
        return [PlacedOrder.from_payload(raw) for raw in data or [] if isinstance(raw, dict)]

    def get(self, order_id):
        path = f"/api/orders/{quote_id(order_id)}"
        data = self.client.get(path)
        if isinstance(data, dict) and isinstance(data.get("order"), dict):
            data = data["order"]
        if not isinstance(data, dict):
            raise UpstreamError("Order not found", status_code=404, path=path)
        return PlacedOrder.from_payload(data)
