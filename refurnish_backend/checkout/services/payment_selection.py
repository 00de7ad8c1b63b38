# checkout/services/payment_selection.py

"""
PAYMENT + DELIVERY SELECTION (value types)

Exactly one payment mode is active. The e-wallet option only matters for
Ewallet; the card type + card details only matter for DebitCredit.
CardDetails never leave this service (not sent upstream, not logged).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PaymentMode(str, Enum):
    CASH_ON_DELIVERY = "CashOnDelivery"
    EWALLET = "Ewallet"
    DEBIT_CREDIT = "DebitCredit"


class EwalletOption(str, Enum):
    GCASH = "gcash"
    PAYMAYA = "paymaya"


class CardType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class DeliveryMode(str, Enum):
    JNT_EXPRESS = "J&T Express"
    LBC_EXPRESS = "LBC Express"
    LALAMOVE = "Lalamove"
    GOGO_XPRESS = "GoGo Xpress"
    GRAB_EXPRESS = "GrabExpress"


@dataclass(frozen=True)
class PaymentSelection:
    payment_mode: PaymentMode = PaymentMode.CASH_ON_DELIVERY
    ewallet_option: EwalletOption = EwalletOption.GCASH
    card_type: CardType = CardType.DEBIT
    delivery_mode: DeliveryMode = DeliveryMode.LBC_EXPRESS

    def as_dict(self) -> dict:
        return {
            "payment_mode": self.payment_mode.value,
            "ewallet_option": self.ewallet_option.value,
            "card_type": self.card_type.value,
            "delivery_mode": self.delivery_mode.value,
        }


@dataclass(frozen=True)
class CardDetails:
    holder_name: str = ""
    number: str = ""
    expiry: str = ""
    cvc: str = ""

    def __repr__(self) -> str:
        return "CardDetails(<redacted>)"
