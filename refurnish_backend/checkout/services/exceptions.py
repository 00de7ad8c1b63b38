# checkout/services/exceptions.py

"""
CHECKOUT SERVICE ERRORS
"""

from __future__ import annotations

from marketplace.exceptions import MarketplaceError


class CheckoutError(MarketplaceError):
    """Base exception for checkout failures."""


class CheckoutValidationError(CheckoutError):
    """
    Local validation failure (missing address, empty selection, bad card).
    Never reaches the network layer. `fields` is field-keyed.
    """

    def __init__(self, message: str, *, fields: dict | None = None):
        super().__init__(message)
        self.message = message
        self.fields = dict(fields or {})


class InvalidCheckoutTransitionError(CheckoutError):
    pass


class PaymentModalError(CheckoutError):
    """Raised when a modal action is not allowed in the current step."""


class PaymentGatewayError(CheckoutError):
    pass
