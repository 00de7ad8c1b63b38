# seller/tests/test_products.py

from __future__ import annotations

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from unittest.mock import MagicMock

from django.test import SimpleTestCase, override_settings

from marketplace.exceptions import UpstreamError
from seller.services.exceptions import ImageUploadError, ImageValidationError, ProductValidationError
from seller.services.images import MAX_IMAGE_BYTES, ImageUpload, ImageUploader, validate_image
from seller.services.products import (
    ProductForm,
    SellerProduct,
    TransactionMode,
    normalize_courier,
    normalize_material,
    normalize_payment_mode,
    parse_age,
)
from seller.services.stats import StatsAggregator
from seller.services.webhook import sign_payload, verify_notification_signature

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=dt_timezone.utc)


def png(name="chair.png", size=10):
    return ImageUpload(filename=name, content_type="image/png", content=b"x" * size)


def sale_form(**overrides):
    data = {
        "product_name": "Narra Dining Chair",
        "category": "Chairs",
        "condition": "Good",
        "material": "Solid Wood",
        "age": "3 years",
        "description": "Sturdy chair, minor scratches",
        "location": "Quezon City",
        "mode_of_transaction": TransactionMode.FOR_SALE,
        "price": "1500",
        "quantity": 2,
        "mode_of_delivery": "LBC Express",
        "mode_of_payment": ["GCash"],
        "images": [png("a.png"), png("b.png")],
    }
    data.update(overrides)
    return ProductForm(**data)


def product(product_id="p1", **overrides):
    data = {
        "id": product_id,
        "title": "Narra Dining Chair",
        "category": "Chairs",
        "status": "listed",
        "owner_id": "u1",
        "price": Decimal("1500.00"),
        "quantity": 2,
        "description": "Sturdy chair, minor scratches",
        "condition": "Good",
        "location": "Quezon City",
        "material": "wood",
        "age_value": 3,
        "age_unit": "years",
        "listed_as": "sale",
        "mode_of_payment": "gcash/maya",
        "courier": "LBC Express",
        "created_at": NOW - timedelta(days=2),
    }
    data.update(overrides)
    return SellerProduct(**data)


class ProductFormTests(SimpleTestCase):
    """
    GUARANTEES:
    - Validation is local and field-keyed
    - Payload matches the upstream product shape
    - Unchanged edits are detected
    """

    def test_valid_sale_form(self):
        sale_form().validate(is_new=True)

    def test_missing_fields_are_reported(self):
        with self.assertRaises(ProductValidationError) as ctx:
            sale_form(product_name="", location=" ", price="0").validate(is_new=True)

        self.assertEqual(ctx.exception.message, "Please complete the required product details.")
        self.assertEqual(set(ctx.exception.fields), {"product_name", "location", "price"})

    def test_new_product_needs_two_images(self):
        with self.assertRaises(ProductValidationError) as ctx:
            sale_form(images=[png()]).validate(is_new=True)
        self.assertIn("images", ctx.exception.fields)

        sale_form(images=[]).validate(is_new=False)

    def test_swap_needs_wanted_item_but_no_price(self):
        form = sale_form(
            mode_of_transaction=TransactionMode.FOR_SWAP,
            price="",
            mode_of_delivery="",
            mode_of_payment=[],
        )
        with self.assertRaises(ProductValidationError) as ctx:
            form.validate(is_new=True)
        self.assertEqual(set(ctx.exception.fields), {"swap_wanted_category", "swap_wanted_description"})

    def test_payload(self):
        payload = sale_form().to_payload(image_urls=["https://img/a.png", "https://img/b.png"])

        self.assertEqual(payload["title"], "Narra Dining Chair")
        self.assertEqual(payload["price"], 1500.0)
        self.assertEqual(payload["status"], "for_approval")
        self.assertEqual(payload["material"], "wood")
        self.assertEqual((payload["ageValue"], payload["ageUnit"]), (3, "years"))
        self.assertEqual(payload["listedAs"], "sale")
        self.assertEqual(payload["mode_of_payment"], "gcash/maya")
        self.assertEqual(payload["courier"], "LBC Express")
        self.assertEqual(payload["images"], ["https://img/a.png", "https://img/b.png"])

    def test_swap_payload_has_no_price(self):
        payload = sale_form(mode_of_transaction="For Swap").to_payload()
        self.assertIsNone(payload["price"])
        self.assertNotIn("images", payload)

    def test_has_changes(self):
        original = product()
        unchanged = ProductForm.from_product(original)

        self.assertFalse(unchanged.has_changes(original))
        self.assertFalse(ProductForm.from_product(original).has_changes(original))

        unchanged.price = "1500.00"
        self.assertFalse(unchanged.has_changes(original))

        unchanged.description = "Like new"
        self.assertTrue(unchanged.has_changes(original))

        with_images = ProductForm.from_product(original)
        with_images.images = [png()]
        self.assertTrue(with_images.has_changes(original))


class NormalizationTests(SimpleTestCase):
    def test_material(self):
        self.assertEqual(normalize_material("Reclaimed WOOD"), "wood")
        self.assertEqual(normalize_material("stainless steel"), "steel")
        self.assertEqual(normalize_material("rattan"), "plastic")

    def test_age(self):
        self.assertEqual(parse_age("3 years"), (3, "years"))
        self.assertEqual(parse_age("6"), (6, "months"))
        self.assertEqual(parse_age("10 weeks"), (10, "days"))

    def test_payment_mode(self):
        self.assertEqual(normalize_payment_mode(["PayMaya"]), "gcash/maya")
        self.assertEqual(normalize_payment_mode(["Bank Transfer"]), "bank")
        self.assertEqual(normalize_payment_mode([]), "cash")

    def test_courier(self):
        self.assertEqual(normalize_courier("lalamove"), "Lalamove")
        self.assertEqual(normalize_courier("GoGo Xpress"), "J&T Express")
        self.assertEqual(normalize_courier(""), "J&T Express")

    def test_product_from_payload(self):
        p = SellerProduct.from_payload(
            {
                "_id": "p9",
                "title": "Sofa",
                "owner": {"_id": "u1"},
                "price": "2500",
                "age": {"value": 2, "unit": "years"},
                "createdAt": "2026-10-18T10:00:00",
            }
        )

        self.assertEqual(p.owner_id, "u1")
        self.assertEqual(p.price, Decimal("2500.00"))
        self.assertEqual(p.age_display, "2 years")
        self.assertIsNotNone(p.created_at.tzinfo)


@override_settings(SELLER_DASHBOARD={"RECENT_DAYS": 7})
class StatsAggregatorTests(SimpleTestCase):
    """
    GUARANTEES:
    - Quantity 0 counts as 1 in value sums
    - A status change moves exactly one product between buckets
    """

    def setUp(self):
        self.stats = StatsAggregator(
            [
                product("p1", price=Decimal("1000.00"), quantity=2),
                product("p2", category="Tables", status="sold", price=Decimal("500.00"), quantity=0),
                product(
                    "p3",
                    status="for_approval",
                    price=None,
                    listed_as="swap",
                    created_at=NOW - timedelta(days=30),
                ),
            ]
        )

    def test_snapshot(self):
        s = self.stats.snapshot(now=NOW)

        self.assertEqual(s.total_sales, Decimal("2500.00"))
        self.assertEqual(s.total_sold_value, Decimal("500.00"))
        self.assertEqual((s.approved, s.pending, s.rejected, s.sold), (1, 1, 0, 1))
        self.assertEqual(s.total_products, 3)
        self.assertEqual(s.category_counts, {"Chairs": 2, "Tables": 1})
        self.assertEqual(s.top_category, "Chairs")
        self.assertEqual(s.recent_products, 2)
        self.assertEqual(s.average_price, Decimal("750.00"))

    def test_incremental_status_change(self):
        self.stats.upsert(product("p1", status="sold", price=Decimal("1000.00"), quantity=2))
        s = self.stats.snapshot(now=NOW)

        self.assertEqual((s.approved, s.sold), (0, 2))
        self.assertEqual(s.total_sold_value, Decimal("2500.00"))
        self.assertEqual(s.total_products, 3)

    def test_remove(self):
        self.stats.remove("p2")
        s = self.stats.snapshot(now=NOW)

        self.assertEqual(s.category_counts, {"Chairs": 2})
        self.assertEqual(s.average_price, Decimal("1000.00"))


class ImageTests(SimpleTestCase):
    def test_rejects_type_and_size(self):
        with self.assertRaisesMessage(ImageValidationError, "Invalid file type: doc.pdf"):
            validate_image(ImageUpload(filename="doc.pdf", content_type="application/pdf", content=b"x"))
        with self.assertRaisesMessage(ImageValidationError, "File too large: big.png. Maximum size is 5MB."):
            validate_image(png("big.png", size=MAX_IMAGE_BYTES + 1))

    def test_all_images_validated_before_first_upload(self):
        client = MagicMock()
        uploader = ImageUploader(client=client)

        with self.assertRaises(ImageValidationError):
            uploader.upload_all([png("ok.png"), ImageUpload(filename="x.gif", content_type="image/gif", content=b"x")])
        client.upload.assert_not_called()

    def test_upload_returns_secure_url(self):
        client = MagicMock()
        client.upload.return_value = {"secure_url": "https://cdn/a.png"}

        self.assertEqual(ImageUploader(client=client).upload(png("a.png")), "https://cdn/a.png")
        self.assertEqual(client.upload.call_args[1]["field"], "image")

    def test_upload_failure(self):
        client = MagicMock()
        client.upload.side_effect = UpstreamError("too big", status_code=413)

        with self.assertRaises(ImageUploadError):
            ImageUploader(client=client).upload(png())


class WebhookSignatureTests(SimpleTestCase):
    @override_settings(NOTIFICATIONS_WEBHOOK_SECRET="s3cret")
    def test_valid_and_invalid(self):
        body = b'{"event": "product_sold_update"}'

        self.assertTrue(verify_notification_signature(raw_body=body, signature=sign_payload(body)))
        self.assertFalse(verify_notification_signature(raw_body=body, signature="deadbeef"))
        self.assertFalse(verify_notification_signature(raw_body=body, signature=None))

    @override_settings(NOTIFICATIONS_WEBHOOK_SECRET="")
    def test_no_secret_never_verifies(self):
        body = b"{}"
        self.assertFalse(verify_notification_signature(raw_body=body, signature=sign_payload(body, secret="")))
