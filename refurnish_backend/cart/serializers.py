# cart/serializers.py

"""
CART SERIALIZERS

Output is server-derived (line totals and order totals are never trusted
from the client). Selection is local state, echoed back as sent.
"""

from rest_framework import serializers


class CartLineSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    thumbnail_url = serializers.CharField(read_only=True, allow_null=True)
    selected = serializers.BooleanField(read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class OrderTotalsSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    shipping_fee = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class CartSerializer(serializers.Serializer):
    """
    GUARANTEES:
    - lines keep upstream cart order
    - totals cover the selected lines only
    """

    lines = CartLineSerializer(many=True, read_only=True)
    selected_ids = serializers.ListField(child=serializers.CharField(), read_only=True)
    item_count = serializers.IntegerField(read_only=True)
    totals = OrderTotalsSerializer(read_only=True)


class CartQuerySerializer(serializers.Serializer):
    """Swagger docs for GET query params."""

    selected = serializers.CharField(
        required=False,
        allow_blank=True,
        help_text="Comma-separated line ids the client has selected",
    )


class CartMutationInputSerializer(serializers.Serializer):
    selected = serializers.ListField(child=serializers.CharField(), required=False, default=list)


def serialize_cart(store) -> dict:
    lines = store.lines
    return CartSerializer(
        {
            "lines": lines,
            "selected_ids": store.selected_ids,
            "item_count": sum(line.quantity for line in lines),
            "totals": store.totals(),
        }
    ).data
