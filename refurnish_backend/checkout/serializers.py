# checkout/serializers.py

"""
CHECKOUT SERIALIZERS

Input serializers double as Swagger docs. Card details are accepted for local
validation only; they are never echoed back or forwarded upstream.
"""

from rest_framework import serializers

from cart.serializers import CartLineSerializer, OrderTotalsSerializer
from checkout.services.payment_selection import CardType, DeliveryMode, EwalletOption, PaymentMode
from orders.serializers import PlacedOrderSerializer


def _choices(enum_cls):
    return [(m.value, m.value) for m in enum_cls]


class CardInputSerializer(serializers.Serializer):
    holder_name = serializers.CharField(required=False, allow_blank=True, default="", trim_whitespace=False)
    number = serializers.CharField(required=False, allow_blank=True, default="")
    expiry = serializers.CharField(required=False, allow_blank=True, default="", help_text="MM/YY")
    cvc = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentSelectionInputSerializer(serializers.Serializer):
    payment_mode = serializers.ChoiceField(
        choices=_choices(PaymentMode), required=False, default=PaymentMode.CASH_ON_DELIVERY.value
    )
    ewallet_option = serializers.ChoiceField(
        choices=_choices(EwalletOption), required=False, default=EwalletOption.GCASH.value
    )
    card_type = serializers.ChoiceField(choices=_choices(CardType), required=False, default=CardType.DEBIT.value)
    delivery_mode = serializers.ChoiceField(
        choices=_choices(DeliveryMode), required=False, default=DeliveryMode.LBC_EXPRESS.value
    )


class QuoteInputSerializer(serializers.Serializer):
    selected_items = serializers.ListField(child=serializers.CharField(), allow_empty=True)


class QuoteSerializer(serializers.Serializer):
    lines = CartLineSerializer(many=True, read_only=True)
    totals = OrderTotalsSerializer(read_only=True)


class ValidateCardInputSerializer(PaymentSelectionInputSerializer):
    card = CardInputSerializer(required=False)


class ValidateCardSerializer(serializers.Serializer):
    valid = serializers.BooleanField(read_only=True)
    errors = serializers.DictField(child=serializers.CharField(), read_only=True)


class CheckoutInputSerializer(PaymentSelectionInputSerializer):
    """
    Empty selections and blank addresses pass here on purpose: the
    orchestrator owns those rules and reports them field-keyed.
    """

    selected_items = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    shipping_address = serializers.CharField(allow_blank=True, trim_whitespace=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    card = CardInputSerializer(required=False)


class EwalletLoginInputSerializer(serializers.Serializer):
    mobile_number = serializers.CharField(allow_blank=True)


class PaymentModalSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(read_only=True)
    step = serializers.CharField(read_only=True)
    provider = serializers.CharField(read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    mobile_number = serializers.CharField(read_only=True)
    error = serializers.CharField(read_only=True, allow_blank=True)


class CheckoutResultSerializer(serializers.Serializer):
    state = serializers.CharField(read_only=True)
    transaction_id = serializers.CharField(read_only=True)
    payment_mode = serializers.CharField(read_only=True, allow_null=True)
    totals = OrderTotalsSerializer(read_only=True, allow_null=True)
    order = PlacedOrderSerializer(read_only=True, allow_null=True)
    evicted_ids = serializers.ListField(child=serializers.CharField(), read_only=True)
    payment = PaymentModalSerializer(read_only=True, allow_null=True)
    message = serializers.CharField(read_only=True, allow_blank=True)


def serialize_modal(modal) -> dict | None:
    if modal is None:
        return None
    return PaymentModalSerializer(
        {
            "transaction_id": modal.transaction_id,
            "step": modal.step.value,
            "provider": modal.provider.value,
            "amount": modal.amount,
            "mobile_number": modal.mobile_number,
            "error": modal.error,
        }
    ).data


def serialize_result(result, *, modal=None) -> dict:
    return {
        "state": result.state.value,
        "transaction_id": result.transaction_id,
        "payment_mode": result.payment_mode.value if result.payment_mode else None,
        "totals": OrderTotalsSerializer(result.totals).data if result.totals else None,
        "order": PlacedOrderSerializer(result.order).data if result.order else None,
        "evicted_ids": list(result.evicted_ids),
        "payment": serialize_modal(modal),
        "message": result.message,
    }
