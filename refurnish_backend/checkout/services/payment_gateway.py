# checkout/services/payment_gateway.py

"""
PAYMENT GATEWAY (capability interface)

The checkout depends only on PaymentGateway. Two adapters:
- MockPaymentGateway: in-memory, default. Succeeds iff 0 < amount < 100000.
- HttpPaymentGateway: upstream /api/payments/process + /api/payments/verify/<txn>.

Select with settings.PAYMENTS["GATEWAY"] = "mock" | "http".
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from checkout.services.exceptions import PaymentGatewayError
from checkout.services.payment_selection import EwalletOption
from checkout.services.transaction_ids import EWALLET_PREFIX, synthesize_transaction_id
from marketplace.client import MarketplaceClient, quote_id
from marketplace.exceptions import UpstreamError
from marketplace.money import money

logger = logging.getLogger(__name__)

MOCK_MAX_AMOUNT = Decimal("100000")

STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_FAILED = "FAILED"


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    transaction_id: str
    status: str
    message: str = ""
    redirect_url: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> "PaymentResult":
        return cls(
            success=bool(data.get("success")),
            transaction_id=str(data.get("transactionId") or ""),
            status=str(data.get("status") or STATUS_FAILED).upper(),
            message=str(data.get("message") or ""),
            redirect_url=str(data.get("redirectUrl") or ""),
        )


class PaymentGateway(ABC):
    @abstractmethod
    def process_payment(
        self,
        *,
        amount: Decimal,
        provider: EwalletOption,
        mobile_number: str | None = None,
    ) -> PaymentResult:
        ...


def _provider_label(provider: EwalletOption) -> str:
    return {EwalletOption.GCASH: "GCash", EwalletOption.PAYMAYA: "PayMaya"}.get(provider, str(provider))


class MockPaymentGateway(PaymentGateway):
    def __init__(self, *, delay_seconds: float = 0.0, sleep=time.sleep):
        self.delay_seconds = float(delay_seconds or 0)
        self._sleep = sleep
        self.calls: list[dict] = []

    def process_payment(self, *, amount, provider, mobile_number=None) -> PaymentResult:
        amount = money(amount)
        provider = EwalletOption(provider)
        self.calls.append({"amount": amount, "provider": provider, "mobile_number": mobile_number})

        if self.delay_seconds:
            self._sleep(self.delay_seconds)

        success = Decimal("0") < amount < MOCK_MAX_AMOUNT
        txn = synthesize_transaction_id(EWALLET_PREFIX)
        if success:
            message = f"Payment of PHP {amount:,} via {_provider_label(provider)} completed successfully"
        else:
            message = "Payment failed. Please try again."

        return PaymentResult(
            success=success,
            transaction_id=txn,
            status=STATUS_COMPLETED if success else STATUS_FAILED,
            message=message,
        )


class HttpPaymentGateway(PaymentGateway):
    def __init__(self, *, client: MarketplaceClient):
        self.client = client

    def process_payment(self, *, amount, provider, mobile_number=None) -> PaymentResult:
        payload = {
            "amount": float(money(amount)),
            "provider": EwalletOption(provider).value,
        }
        if mobile_number:
            payload["mobileNumber"] = mobile_number

        try:
            data = self.client.post("/api/payments/process", payload)
        except UpstreamError as exc:
            logger.error(
                "Payment processing failed upstream",
                extra={"status": exc.status_code, "error": exc.message},
            )
            raise PaymentGatewayError(exc.message) from exc

        if not isinstance(data, dict):
            raise PaymentGatewayError("Unexpected response from the payment service.")
        return PaymentResult.from_payload(data)

    def verify_payment(self, transaction_id: str) -> PaymentResult:
        try:
            data = self.client.get(f"/api/payments/verify/{quote_id(transaction_id)}")
        except UpstreamError as exc:
            raise PaymentGatewayError(exc.message) from exc

        if not isinstance(data, dict):
            raise PaymentGatewayError("Unexpected response from the payment service.")
        return PaymentResult.from_payload(data)


def get_payment_gateway(*, client: MarketplaceClient | None = None) -> PaymentGateway:
    cfg = getattr(settings, "PAYMENTS", {}) or {}
    kind = str(cfg.get("GATEWAY") or "mock").strip().lower()

    if kind == "http":
        return HttpPaymentGateway(client=client or MarketplaceClient())
    if kind == "mock":
        return MockPaymentGateway(delay_seconds=float(cfg.get("MOCK_DELAY_SECONDS") or 0))
    raise PaymentGatewayError(f"Unknown payment gateway: {kind}")
