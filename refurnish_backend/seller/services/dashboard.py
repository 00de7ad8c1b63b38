# seller/services/dashboard.py

"""
SELLER DASHBOARD

Local mirror of the signed-in seller's products (the full product collection
filtered by owner id), kept current by:
- push notifications for this user (status patch in place + 5s toast)
- an auto-refresh backstop (refresh_if_due, every 30s)
- its own create / update / delete calls

Hard rules:
- The subscription is torn down on stop() and whenever the user changes.
- Events queued while no dashboard was listening are replayed on start(),
  before the upstream refresh, so they only raise toasts.
- Product forms are validated, then every image is validated, before the
  first upload; an upload failure aborts before the product request.
- An edit with no changes makes no network call.
- Aggregates are updated incrementally on every mirror change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from math import ceil
from typing import Callable

from django.conf import settings
from django.utils import timezone

from marketplace.auth import AuthSession, require_session
from marketplace.exceptions import UpstreamError
from seller.services.exceptions import ImageUploadError, ProductNotFoundError
from seller.services.images import ImageUploader
from seller.services.notifications import NotificationChannel
from seller.services.products import STATUS_FOR_APPROVAL, STATUS_SOLD, ProductForm, SellerProduct
from seller.services.remote import ProductsRemote
from seller.services.stats import DashboardStats, StatsAggregator

logger = logging.getLogger(__name__)

FILTERS = ("all", "available", "out_of_stock")
SORTS = ("name", "price", "quantity", "category")


def _cfg() -> dict:
    return getattr(settings, "SELLER_DASHBOARD", {}) or {}


@dataclass(frozen=True)
class Toast:
    message: str
    expires_at: datetime


@dataclass(frozen=True)
class ProductPage:
    products: list
    page: int
    total_pages: int
    total_items: int


class SellerDashboard:
    def __init__(
        self,
        *,
        session: AuthSession | None,
        products: ProductsRemote,
        uploader: ImageUploader,
        channel: NotificationChannel,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.session = session
        self.products_remote = products
        self.uploader = uploader
        self.channel = channel
        self._clock = clock

        self.products: list[SellerProduct] = []
        self.stats = StatsAggregator()
        self.shop_name = ""
        self.last_refresh: datetime | None = None
        self.toasts: list[Toast] = []
        self._unsubscribe: Callable[[], None] | None = None

    # -----------------------------
    # Lifecycle
    # -----------------------------

    @property
    def user_id(self) -> str:
        return self.session.user_id if self.session else ""

    @property
    def is_started(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        session = require_session(self.session)
        if self._unsubscribe is None:
            self._unsubscribe = self.channel.subscribe(
                session.user_id,
                on_status=self._on_status_update,
                on_sold=self._on_sold_update,
            )
            # Queued events first: the refresh that follows is the newer state.
            self.channel.replay(session.user_id)
        self.load_shop_name()
        self.refresh()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def set_session(self, session: AuthSession | None) -> None:
        """A different user tears down the old subscription and mirror."""
        new_user = session.user_id if session else ""
        if new_user == self.user_id:
            self.session = session
            return

        was_started = self.is_started
        self.stop()
        self.session = session
        self.products = []
        self.stats.reset([])
        self.shop_name = ""
        self.last_refresh = None
        self.toasts = []
        if was_started and session is not None and session.is_authenticated:
            self.start()

    # -----------------------------
    # Sync
    # -----------------------------

    def refresh(self) -> list[SellerProduct]:
        session = require_session(self.session)
        every = self.products_remote.list_all()
        self.products = [p for p in every if p.owner_id == session.user_id]
        self.stats.reset(self.products)
        self.last_refresh = self._clock()
        return self.products

    def refresh_if_due(self) -> bool:
        interval = timedelta(seconds=int(_cfg().get("REFRESH_INTERVAL_SECONDS", 30)))
        if self.last_refresh is not None and self._clock() - self.last_refresh < interval:
            return False
        try:
            self.refresh()
        except UpstreamError as exc:
            logger.error(
                "Seller dashboard refresh failed",
                extra={"user_id": self.user_id, "status": exc.status_code, "error": exc.message},
            )
            return False
        return True

    def load_shop_name(self) -> str:
        fallback = (self.session.first_name if self.session else "") or "My"
        try:
            name = self.products_remote.shop_name()
        except UpstreamError as exc:
            logger.warning("Seller profile unavailable", extra={"user_id": self.user_id, "error": exc.message})
            name = ""
        self.shop_name = name or fallback
        return self.shop_name

    # -----------------------------
    # Push notifications
    # -----------------------------

    def _patch_status(self, product_id: str, status: str) -> bool:
        for i, product in enumerate(self.products):
            if product.id == product_id:
                patched = replace(product, status=status)
                self.products[i] = patched
                self.stats.upsert(patched)
                return True
        return False

    def _toast(self, message: str) -> None:
        seconds = int(_cfg().get("TOAST_SECONDS", 5))
        self.toasts.append(Toast(message=message, expires_at=self._clock() + timedelta(seconds=seconds)))

    def _on_status_update(self, product_id: str, status: str, message: str) -> None:
        self._patch_status(product_id, status)
        if message:
            self._toast(message)

    def _on_sold_update(self, product_id: str, product_name: str) -> None:
        self._patch_status(product_id, STATUS_SOLD)
        self._toast(f'Your product "{product_name}" has been sold!')

    def active_toasts(self) -> list[Toast]:
        now = self._clock()
        self.toasts = [t for t in self.toasts if t.expires_at > now]
        return list(self.toasts)

    # -----------------------------
    # Product writes
    # -----------------------------

    def get_product(self, product_id: str) -> SellerProduct:
        for product in self.products:
            if product.id == str(product_id):
                return product
        raise ProductNotFoundError("Product not found")

    def create_product(self, form: ProductForm) -> SellerProduct | None:
        require_session(self.session)
        form.validate(is_new=True)

        urls = self.uploader.upload_all(form.images)
        if not urls:
            raise ImageUploadError("No images were uploaded successfully. Please check your image files and try again.")

        created = self.products_remote.create(form.to_payload(image_urls=urls))
        logger.info("Product created", extra={"user_id": self.user_id, "product_id": created.id if created else ""})

        if created is None:
            self.refresh()
            return None
        self._upsert(created)
        return created

    def update_product(self, product_id: str, form: ProductForm) -> SellerProduct | None:
        """Returns None (and makes no network call) when nothing changed."""
        require_session(self.session)
        original = self.get_product(product_id)
        form.validate(is_new=False)

        if not form.has_changes(original):
            logger.info("Product update skipped (no changes)", extra={"product_id": original.id})
            return None

        urls = self.uploader.upload_all(form.images) if form.images else []
        payload = form.to_payload(image_urls=urls)
        updated = self.products_remote.update(original.id, payload)

        if updated is None:
            updated = replace(
                original,
                title=payload["title"],
                description=payload["description"],
                price=None if payload["price"] is None else Decimal(str(payload["price"])),
                quantity=payload["quantity"],
                condition=payload["condition"],
                category=payload["category"],
                location=payload["location"],
                material=payload["material"],
                age_value=payload["ageValue"],
                age_unit=payload["ageUnit"],
                listed_as=payload["listedAs"],
                mode_of_payment=payload["mode_of_payment"],
                courier=payload["courier"],
                swap_wanted_category=payload["swapWantedCategory"],
                swap_wanted_description=payload["swapWantedDescription"],
                images=tuple(urls) or original.images,
                status=STATUS_FOR_APPROVAL,
                updated_at=self._clock(),
            )
        self._upsert(updated)
        return updated

    def delete_product(self, product_id: str) -> None:
        require_session(self.session)
        product = self.get_product(product_id)
        self.products_remote.delete(product.id)
        self.products = [p for p in self.products if p.id != product.id]
        self.stats.remove(product.id)

    def _upsert(self, product: SellerProduct) -> None:
        for i, existing in enumerate(self.products):
            if existing.id == product.id:
                self.products[i] = product
                break
        else:
            self.products.append(product)
        self.stats.upsert(product)

    # -----------------------------
    # Read side
    # -----------------------------

    def summary(self) -> DashboardStats:
        return self.stats.snapshot(now=self._clock())

    def page(self, *, filter_by: str = "all", sort_by: str = "", page: int = 1) -> ProductPage:
        items = list(self.products)

        if filter_by == "available":
            items = [p for p in items if p.quantity > 0]
        elif filter_by == "out_of_stock":
            items = [p for p in items if p.quantity <= 0]

        if sort_by == "name":
            items.sort(key=lambda p: p.title.lower())
        elif sort_by == "price":
            items.sort(key=lambda p: p.price or 0)
        elif sort_by == "quantity":
            items.sort(key=lambda p: p.quantity or 0)
        elif sort_by == "category":
            items.sort(key=lambda p: p.category.lower())

        size = int(_cfg().get("PAGE_SIZE", 7))
        total_items = len(items)
        total_pages = ceil(total_items / size) if total_items else 0
        page = max(1, int(page or 1))
        start = (page - 1) * size
        return ProductPage(
            products=items[start:start + size],
            page=page,
            total_pages=total_pages,
            total_items=total_items,
        )
