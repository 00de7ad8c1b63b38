# checkout/services/payment_modal.py

"""
PAYMENT MOCK MODAL (e-wallet confirmation)

Steps:
    LOGIN -> CONFIRM -> PROCESSING -> SUCCESS
                ^           |
                +-- failure-+   (inline error, mobile number kept)

Rules:
- Mobile number input is filtered per keystroke: digits only, max 10.
- Login requires exactly 10 digits.
- While PROCESSING every action is rejected (no double submit, no dismissal).
- On success the modal reports {status: "SOLD", transaction_id, amount}
  to its owner and closes.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum
from typing import Callable

from checkout.services.exceptions import PaymentGatewayError, PaymentModalError
from checkout.services.payment_gateway import PaymentGateway
from checkout.services.payment_selection import EwalletOption
from marketplace.exceptions import UpstreamError
from marketplace.money import money

logger = logging.getLogger(__name__)

MOBILE_NUMBER_LENGTH = 10


class ModalStep(str, Enum):
    LOGIN = "login"
    CONFIRM = "confirm"
    PROCESSING = "processing"
    SUCCESS = "success"


def filter_mobile_number(text: str) -> str:
    return "".join(ch for ch in str(text or "") if ch.isdigit())[:MOBILE_NUMBER_LENGTH]


class PaymentModal:
    def __init__(
        self,
        *,
        amount,
        provider,
        transaction_id: str,
        gateway: PaymentGateway,
        on_success: Callable[[dict], None] | None = None,
    ):
        self.amount: Decimal = money(amount)
        self.provider = EwalletOption(provider)
        self.transaction_id = transaction_id
        self.gateway = gateway
        self.on_success = on_success

        self.step = ModalStep.LOGIN
        self.mobile_number = ""
        self.error = ""
        self.is_open = True
        self.result: dict | None = None

    # -----------------------------
    # Guards
    # -----------------------------

    def _reject_if_processing(self, action: str) -> None:
        if self.step is ModalStep.PROCESSING:
            raise PaymentModalError(f"Cannot {action} while the payment is processing.")

    def _require_open(self) -> None:
        if not self.is_open:
            raise PaymentModalError("Payment window is closed.")

    # -----------------------------
    # LOGIN
    # -----------------------------

    def type_mobile_number(self, text: str) -> str:
        self._require_open()
        self._reject_if_processing("edit the mobile number")
        if self.step is not ModalStep.LOGIN:
            raise PaymentModalError("Mobile number can only be changed on the login step.")

        self.mobile_number = filter_mobile_number(text)
        self.error = ""
        return self.mobile_number

    def submit_login(self) -> bool:
        self._require_open()
        self._reject_if_processing("log in")
        if self.step is not ModalStep.LOGIN:
            raise PaymentModalError("Already logged in.")

        if len(self.mobile_number) != MOBILE_NUMBER_LENGTH:
            self.error = "Please enter a valid 10-digit mobile number."
            return False

        self.error = ""
        self.step = ModalStep.CONFIRM
        return True

    def back_to_login(self) -> None:
        self._require_open()
        self._reject_if_processing("go back")
        if self.step is ModalStep.CONFIRM:
            self.step = ModalStep.LOGIN
            self.error = ""

    # -----------------------------
    # CONFIRM -> PROCESSING
    # -----------------------------

    def proceed(self) -> dict | None:
        """
        Pay via the gateway. Returns the success payload, or None when the
        gateway declined (step returns to CONFIRM with `error` set).
        """
        self._require_open()
        self._reject_if_processing("pay")
        if self.step is not ModalStep.CONFIRM:
            raise PaymentModalError("Log in with your mobile number first.")

        self.step = ModalStep.PROCESSING
        self.error = ""
        try:
            result = self.gateway.process_payment(
                amount=self.amount,
                provider=self.provider,
                mobile_number=self.mobile_number,
            )
        except (PaymentGatewayError, UpstreamError) as exc:
            message = getattr(exc, "message", "") or str(exc)
            logger.warning(
                "E-wallet payment errored",
                extra={"transaction_id": self.transaction_id, "error": message},
            )
            self.step = ModalStep.CONFIRM
            self.error = message or "Payment failed. Please try again."
            return None

        if not result.success:
            logger.info(
                "E-wallet payment declined",
                extra={"transaction_id": self.transaction_id, "status": result.status},
            )
            self.step = ModalStep.CONFIRM
            self.error = result.message or "Payment failed. Please try again."
            return None

        self.step = ModalStep.SUCCESS
        self.is_open = False
        self.result = {
            "status": "SOLD",
            "transaction_id": self.transaction_id,
            "amount": self.amount,
        }
        if self.on_success is not None:
            self.on_success(dict(self.result))
        return dict(self.result)

    # -----------------------------
    # Close
    # -----------------------------

    def dismiss(self) -> None:
        self._reject_if_processing("close the payment window")
        self.is_open = False

    # -----------------------------
    # Persistence (pending checkout across requests)
    # -----------------------------

    def snapshot(self) -> dict:
        return {
            "amount": str(self.amount),
            "provider": self.provider.value,
            "transaction_id": self.transaction_id,
            "step": self.step.value,
            "mobile_number": self.mobile_number,
            "error": self.error,
            "is_open": self.is_open,
        }

    @classmethod
    def restore(cls, data: dict, *, gateway: PaymentGateway, on_success=None) -> "PaymentModal":
        modal = cls(
            amount=data["amount"],
            provider=data["provider"],
            transaction_id=data["transaction_id"],
            gateway=gateway,
            on_success=on_success,
        )
        modal.step = ModalStep(data.get("step") or ModalStep.LOGIN.value)
        modal.mobile_number = filter_mobile_number(data.get("mobile_number") or "")
        modal.error = str(data.get("error") or "")
        modal.is_open = bool(data.get("is_open", True))
        return modal
