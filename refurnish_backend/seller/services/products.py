# seller/services/products.py

"""
SELLER PRODUCTS + PRODUCT FORM

SellerProduct is the dashboard's read model of an upstream product.
ProductForm is the add/edit form: validation runs locally, before any image
upload or product request, and the payload is normalized to the upstream
product shape.

Form rules:
- productName, category, condition, material, age, description, location
  are required
- price > 0 unless the listing is swap-only
- sale / both need a delivery mode and a payment mode
- swap / both need the wanted category + description
- new products need at least 2 images
- an edit re-submits the product for approval
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal, InvalidOperation
from enum import Enum

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from marketplace.money import money
from seller.services.exceptions import ProductValidationError
from seller.services.images import ImageUpload

STATUS_LISTED = "listed"
STATUS_FOR_APPROVAL = "for_approval"
STATUS_REJECTED = "rejected"
STATUS_SOLD = "sold"

MIN_NEW_PRODUCT_IMAGES = 2

REQUIRED_FIELDS = {
    "product_name": "Product name is required",
    "category": "Category is required",
    "condition": "Condition is required",
    "material": "Material is required",
    "age": "Age is required",
    "description": "Description is required",
    "location": "Location is required",
}


class TransactionMode(str, Enum):
    FOR_SALE = "For Sale"
    FOR_SWAP = "For Swap"
    BOTH = "Both"

    @property
    def listed_as(self) -> str:
        return {
            TransactionMode.FOR_SALE: "sale",
            TransactionMode.FOR_SWAP: "swap",
            TransactionMode.BOTH: "both",
        }[self]

    @classmethod
    def from_listed_as(cls, listed_as: str) -> "TransactionMode":
        return {"swap": cls.FOR_SWAP, "both": cls.BOTH}.get(listed_as or "", cls.FOR_SALE)


def _parse_dt(v) -> datetime | None:
    if not v:
        return None
    try:
        dt = parse_datetime(str(v))
    except ValueError:
        return None
    if dt is not None and timezone.is_naive(dt):
        dt = timezone.make_aware(dt, dt_timezone.utc)
    return dt


def _price_or_none(v) -> Decimal | None:
    if v is None or v == "" or isinstance(v, bool):
        return None
    try:
        return money(v)
    except ValueError:
        return None


@dataclass(frozen=True)
class SellerProduct:
    id: str
    title: str
    category: str
    status: str
    owner_id: str
    price: Decimal | None = None
    quantity: int = 1
    description: str = ""
    condition: str = ""
    location: str = ""
    material: str = ""
    age_value: int | None = None
    age_unit: str = ""
    listed_as: str = "sale"
    mode_of_payment: str = ""
    courier: str = ""
    swap_wanted_category: str = ""
    swap_wanted_description: str = ""
    images: tuple[str, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def age_display(self) -> str:
        if self.age_value is None:
            return ""
        return f"{self.age_value} {self.age_unit}"

    @classmethod
    def from_payload(cls, raw: dict) -> "SellerProduct":
        owner = raw.get("owner")
        if isinstance(owner, dict):
            owner = owner.get("_id") or owner.get("id")

        age = raw.get("age") if isinstance(raw.get("age"), dict) else {}
        age_value = age.get("value", raw.get("ageValue"))
        try:
            age_value = int(age_value) if age_value not in (None, "") else None
        except (TypeError, ValueError):
            age_value = None

        try:
            quantity = int(raw.get("quantity") if raw.get("quantity") is not None else 1)
        except (TypeError, ValueError):
            quantity = 1

        return cls(
            id=str(raw.get("_id") or raw.get("id") or ""),
            title=str(raw.get("title") or ""),
            category=str(raw.get("category") or ""),
            status=str(raw.get("status") or STATUS_FOR_APPROVAL),
            owner_id=str(owner or ""),
            price=_price_or_none(raw.get("price")),
            quantity=quantity,
            description=str(raw.get("description") or ""),
            condition=str(raw.get("condition") or ""),
            location=str(raw.get("location") or ""),
            material=str(raw.get("material") or ""),
            age_value=age_value,
            age_unit=str(age.get("unit") or raw.get("ageUnit") or ""),
            listed_as=str(raw.get("listedAs") or "sale"),
            mode_of_payment=str(raw.get("mode_of_payment") or ""),
            courier=str(raw.get("courier") or ""),
            swap_wanted_category=str(raw.get("swapWantedCategory") or ""),
            swap_wanted_description=str(raw.get("swapWantedDescription") or ""),
            images=tuple(str(u) for u in raw.get("images") or [] if u),
            created_at=_parse_dt(raw.get("createdAt")),
            updated_at=_parse_dt(raw.get("updatedAt")),
        )


# ============================================================
# PAYLOAD NORMALIZATION
# ============================================================


def normalize_material(raw: str) -> str:
    lower = (raw or "").lower()
    if "wood" in lower:
        return "wood"
    if "steel" in lower:
        return "steel"
    return "plastic"


def parse_age(raw: str) -> tuple[int, str]:
    """'3 years' -> (3, 'years'). Unit defaults to months; anything else is days."""
    parts = (raw or "").split()
    value_part = parts[0] if parts else "0"
    unit_part = parts[1] if len(parts) > 1 else "months"

    digits = re.sub(r"[^0-9]", "", value_part)
    value = int(digits) if digits else 0

    unit_lower = unit_part.lower()
    if unit_lower.startswith("year"):
        unit = "years"
    elif unit_lower.startswith("month"):
        unit = "months"
    else:
        unit = "days"
    return value, unit


def normalize_payment_mode(modes: list[str]) -> str:
    first = (modes[0] if modes else "cash").lower()
    if "gcash" in first or "maya" in first:
        return "gcash/maya"
    if "bank" in first:
        return "bank"
    return "cash"


def normalize_courier(raw: str) -> str:
    raw = raw or "J&T Express"
    if re.search(r"lalamove", raw, re.IGNORECASE):
        return "Lalamove"
    if re.search(r"lbc", raw, re.IGNORECASE):
        return "LBC Express"
    return "J&T Express"


# ============================================================
# FORM
# ============================================================


@dataclass
class ProductForm:
    product_name: str = ""
    category: str = ""
    condition: str = ""
    material: str = ""
    age: str = ""
    description: str = ""
    location: str = ""
    mode_of_transaction: TransactionMode = TransactionMode.FOR_SALE
    price: str = ""
    quantity: int = 1
    mode_of_delivery: str = ""
    mode_of_payment: list[str] = field(default_factory=list)
    swap_wanted_category: str = ""
    swap_wanted_description: str = ""
    images: list[ImageUpload] = field(default_factory=list)

    def __post_init__(self):
        self.mode_of_transaction = TransactionMode(self.mode_of_transaction)

    @property
    def is_swap(self) -> bool:
        return self.mode_of_transaction is TransactionMode.FOR_SWAP

    @property
    def is_both(self) -> bool:
        return self.mode_of_transaction is TransactionMode.BOTH

    def _price_value(self) -> Decimal | None:
        try:
            value = Decimal(str(self.price).strip())
        except (InvalidOperation, ValueError):
            return None
        return value if value.is_finite() else None

    def validate(self, *, is_new: bool) -> None:
        errors = {}

        for name, message in REQUIRED_FIELDS.items():
            if not str(getattr(self, name) or "").strip():
                errors[name] = message

        if not self.is_swap:
            value = self._price_value()
            if value is None or value <= 0:
                errors["price"] = "Price must be greater than 0"

        if not self.is_swap:
            if not (self.mode_of_delivery or "").strip():
                errors["mode_of_delivery"] = "Select a delivery mode"
            if not self.mode_of_payment:
                errors["mode_of_payment"] = "Select a payment mode"

        if self.is_swap or self.is_both:
            if not (self.swap_wanted_category or "").strip():
                errors["swap_wanted_category"] = "Wanted category is required for swaps"
            if not (self.swap_wanted_description or "").strip():
                errors["swap_wanted_description"] = "Wanted item description is required for swaps"

        if is_new and len(self.images) < MIN_NEW_PRODUCT_IMAGES:
            errors["images"] = f"At least {MIN_NEW_PRODUCT_IMAGES} images are required"

        if errors:
            raise ProductValidationError("Please complete the required product details.", fields=errors)

    def to_payload(self, *, image_urls: list[str] | None = None) -> dict:
        age_value, age_unit = parse_age(self.age)
        payload = {
            "title": self.product_name,
            "description": self.description,
            "price": None if self.is_swap else float(self._price_value() or 0),
            "quantity": int(self.quantity),
            "condition": self.condition,
            "category": self.category,
            "location": self.location or "",
            "status": STATUS_FOR_APPROVAL,
            "material": normalize_material(self.material),
            "ageValue": age_value,
            "ageUnit": age_unit,
            "listedAs": self.mode_of_transaction.listed_as,
            "mode_of_payment": normalize_payment_mode(self.mode_of_payment),
            "courier": normalize_courier(self.mode_of_delivery),
            "swapWantedCategory": self.swap_wanted_category or "",
            "swapWantedDescription": self.swap_wanted_description or "",
        }
        if image_urls:
            payload["images"] = list(image_urls)
        return payload

    @classmethod
    def from_product(cls, product: SellerProduct) -> "ProductForm":
        """Pre-filled edit form (no images: existing ones are kept unless replaced)."""
        return cls(
            product_name=product.title,
            category=product.category,
            condition=product.condition,
            material=product.material,
            age=product.age_display,
            description=product.description,
            location=product.location,
            mode_of_transaction=TransactionMode.from_listed_as(product.listed_as),
            price=_price_text(product.price),
            quantity=product.quantity or 1,
            mode_of_delivery=product.courier,
            mode_of_payment=[product.mode_of_payment] if product.mode_of_payment else [],
            swap_wanted_category=product.swap_wanted_category,
            swap_wanted_description=product.swap_wanted_description,
        )

    def has_changes(self, original: SellerProduct) -> bool:
        """Any field differs from the original, or new images were attached."""
        baseline = ProductForm.from_product(original)
        fields_to_compare = (
            "product_name",
            "category",
            "condition",
            "material",
            "age",
            "description",
            "location",
            "mode_of_transaction",
            "quantity",
            "mode_of_delivery",
            "mode_of_payment",
            "swap_wanted_category",
            "swap_wanted_description",
        )
        for name in fields_to_compare:
            if getattr(self, name) != getattr(baseline, name):
                return True
        if self._price_value() != baseline._price_value():
            return True
        return len(self.images) > 0


def _price_text(price: Decimal | None) -> str:
    if not price:
        return ""
    # 1500.00 -> "1500", 99.50 -> "99.5"
    return format(price.normalize(), "f")
