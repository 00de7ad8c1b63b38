# seller/services/remote.py

"""
UPSTREAM PRODUCTS COLLABORATOR

GET    /api/products        -> [product, ...] (all products; filtered by owner here)
POST   /api/products        product payload -> {product} | product
PUT    /api/products/<id>   product payload -> {product, requiresReapproval}
DELETE /api/products/<id>
GET    /api/seller/me       -> {shopName}
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketplace.client import MarketplaceClient, quote_id
from seller.services.products import SellerProduct


def _product_from_response(data) -> SellerProduct | None:
    if isinstance(data, dict) and isinstance(data.get("product"), dict):
        data = data["product"]
    if isinstance(data, dict) and (data.get("_id") or data.get("id")):
        return SellerProduct.from_payload(data)
    return None


class ProductsRemote(ABC):
    @abstractmethod
    def list_all(self) -> list[SellerProduct]:
        ...

    @abstractmethod
    def create(self, payload: dict) -> SellerProduct | None:
        ...

    @abstractmethod
    def update(self, product_id: str, payload: dict) -> SellerProduct | None:
        ...

    @abstractmethod
    def delete(self, product_id: str) -> None:
        ...

    @abstractmethod
    def shop_name(self) -> str:
        ...


class HttpProductsRemote(ProductsRemote):
    def __init__(self, *, client: MarketplaceClient):
        self.client = client

    def list_all(self):
        data = self.client.get("/api/products")
        if isinstance(data, dict):
            data = data.get("products") or []
        return [SellerProduct.from_payload(raw) for raw in data or [] if isinstance(raw, dict)]

    def create(self, payload):
        return _product_from_response(self.client.post("/api/products", payload))

    def update(self, product_id, payload):
        return _product_from_response(self.client.put(f"/api/products/{quote_id(product_id)}", payload))

    def delete(self, product_id):
        self.client.delete(f"/api/products/{quote_id(product_id)}")

    def shop_name(self):
        data = self.client.get("/api/seller/me")
        return str(data.get("shopName") or "") if isinstance(data, dict) else ""
