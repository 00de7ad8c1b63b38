# orders/serializers.py

from rest_framework import serializers


class OrderItemSerializer(serializers.Serializer):
    product_id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    image = serializers.CharField(read_only=True, allow_null=True)
    location = serializers.CharField(read_only=True, allow_null=True)
    category = serializers.CharField(read_only=True, allow_null=True)


class PlacedOrderSerializer(serializers.Serializer):
    """
    GUARANTEES:
    - subtotal is display-only (total_amount - shipping_fee)
    - status is one of the upstream order statuses
    """

    order_id = serializers.CharField(read_only=True)
    status = serializers.SerializerMethodField()
    items = OrderItemSerializer(many=True, read_only=True)
    subtotal = serializers.DecimalField(
        source="display_subtotal", max_digits=12, decimal_places=2, read_only=True
    )
    shipping_fee = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    payment_method = serializers.CharField(read_only=True)
    delivery_method = serializers.CharField(read_only=True)
    tracking_number = serializers.CharField(read_only=True, allow_null=True)
    shipping_address = serializers.CharField(read_only=True, allow_null=True)
    notes = serializers.CharField(read_only=True, allow_null=True)
    created_at = serializers.DateTimeField(read_only=True, allow_null=True)
    updated_at = serializers.DateTimeField(read_only=True, allow_null=True)

    def get_status(self, obj) -> str:
        return obj.status.value


class OrderListSerializer(serializers.Serializer):
    state = serializers.CharField(read_only=True)
    orders = PlacedOrderSerializer(many=True, read_only=True)
