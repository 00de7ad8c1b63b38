# seller/services/exceptions.py

"""
SELLER SERVICE ERRORS

Validation errors are raised before any upstream request. Upload errors abort
a product submission before the product record request is made.
"""

from __future__ import annotations

from marketplace.exceptions import MarketplaceError


class SellerError(MarketplaceError):
    """Base exception for seller dashboard failures."""


class ProductValidationError(SellerError):
    def __init__(self, message: str, *, fields: dict | None = None):
        super().__init__(message)
        self.message = message
        self.fields = dict(fields or {})


class ProductNotFoundError(SellerError):
    pass


class ImageValidationError(SellerError):
    """Wrong MIME type or file too large. Raised before any upload starts."""


class ImageUploadError(SellerError):
    pass
