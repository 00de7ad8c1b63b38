# seller/serializers.py

"""
SELLER SERIALIZERS

Product form input accepts multipart (with image files) or JSON (edits that
keep the existing images).
"""

from rest_framework import serializers

from seller.services.dashboard import FILTERS, SORTS
from seller.services.images import ImageUpload
from seller.services.notifications import EVENT_SOLD_UPDATE, EVENT_STATUS_UPDATE
from seller.services.products import ProductForm, TransactionMode


class ProductFormInputSerializer(serializers.Serializer):
    product_name = serializers.CharField(required=False, allow_blank=True, default="")
    category = serializers.CharField(required=False, allow_blank=True, default="")
    condition = serializers.CharField(required=False, allow_blank=True, default="")
    material = serializers.CharField(required=False, allow_blank=True, default="")
    age = serializers.CharField(required=False, allow_blank=True, default="", help_text='e.g. "3 years"')
    description = serializers.CharField(required=False, allow_blank=True, default="")
    location = serializers.CharField(required=False, allow_blank=True, default="")
    mode_of_transaction = serializers.ChoiceField(
        choices=[(m.value, m.value) for m in TransactionMode],
        required=False,
        default=TransactionMode.FOR_SALE.value,
    )
    price = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(required=False, min_value=0, default=1)
    mode_of_delivery = serializers.CharField(required=False, allow_blank=True, default="")
    mode_of_payment = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    swap_wanted_category = serializers.CharField(required=False, allow_blank=True, default="")
    swap_wanted_description = serializers.CharField(required=False, allow_blank=True, default="")
    images = serializers.ListField(child=serializers.FileField(), required=False, default=list)

    def to_form(self) -> ProductForm:
        data = dict(self.validated_data)
        images = [ImageUpload.from_uploaded_file(f) for f in data.pop("images", [])]
        return ProductForm(images=images, **data)


class SellerProductSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    title = serializers.CharField(read_only=True)
    description = serializers.CharField(read_only=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True, allow_null=True)
    quantity = serializers.IntegerField(read_only=True)
    condition = serializers.CharField(read_only=True)
    category = serializers.CharField(read_only=True)
    location = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    material = serializers.CharField(read_only=True)
    age = serializers.CharField(source="age_display", read_only=True)
    listed_as = serializers.CharField(read_only=True)
    mode_of_payment = serializers.CharField(read_only=True)
    courier = serializers.CharField(read_only=True)
    swap_wanted_category = serializers.CharField(read_only=True)
    swap_wanted_description = serializers.CharField(read_only=True)
    images = serializers.ListField(child=serializers.CharField(), read_only=True)
    created_at = serializers.DateTimeField(read_only=True, allow_null=True)
    updated_at = serializers.DateTimeField(read_only=True, allow_null=True)


class DashboardStatsSerializer(serializers.Serializer):
    total_sales = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    approved = serializers.IntegerField(read_only=True)
    pending = serializers.IntegerField(read_only=True)
    rejected = serializers.IntegerField(read_only=True)
    sold = serializers.IntegerField(read_only=True)
    total_products = serializers.IntegerField(read_only=True)
    total_sold_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    category_counts = serializers.DictField(child=serializers.IntegerField(), read_only=True)
    top_category = serializers.CharField(read_only=True, allow_null=True)
    recent_products = serializers.IntegerField(read_only=True)
    average_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class ToastSerializer(serializers.Serializer):
    message = serializers.CharField(read_only=True)
    expires_at = serializers.DateTimeField(read_only=True)


class ProductPageSerializer(serializers.Serializer):
    products = SellerProductSerializer(many=True, read_only=True)
    page = serializers.IntegerField(read_only=True)
    total_pages = serializers.IntegerField(read_only=True)
    total_items = serializers.IntegerField(read_only=True)


class DashboardSerializer(serializers.Serializer):
    shop_name = serializers.CharField(read_only=True)
    stats = DashboardStatsSerializer(read_only=True)
    listing = ProductPageSerializer(read_only=True)
    toasts = ToastSerializer(many=True, read_only=True)
    last_refresh = serializers.DateTimeField(read_only=True, allow_null=True)


class DashboardQuerySerializer(serializers.Serializer):
    filter = serializers.ChoiceField(choices=FILTERS, required=False, default="all")
    sort = serializers.ChoiceField(choices=SORTS, required=False, allow_blank=True, default="")
    page = serializers.IntegerField(required=False, min_value=1, default=1)


class NotificationEventSerializer(serializers.Serializer):
    event = serializers.ChoiceField(choices=[EVENT_STATUS_UPDATE, EVENT_SOLD_UPDATE])
    userId = serializers.CharField()
    data = serializers.DictField()

    def validate(self, attrs):
        data = attrs["data"]
        if not str(data.get("productId") or "").strip():
            raise serializers.ValidationError({"data": "productId is required"})
        if attrs["event"] == EVENT_STATUS_UPDATE and not str(data.get("status") or "").strip():
            raise serializers.ValidationError({"data": "status is required"})
        return attrs
