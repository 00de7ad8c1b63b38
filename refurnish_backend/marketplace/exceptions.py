# marketplace/exceptions.py

"""
MARKETPLACE ERRORS

Root of the BFF error taxonomy. App-level errors (checkout, seller, ...)
subclass MarketplaceError so views can catch one family at the boundary.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Base exception for all BFF service failures."""


class NotAuthenticatedError(MarketplaceError):
    """Raised when an operation needs a user + token and none is present."""


class UpstreamError(MarketplaceError):
    """
    Upstream marketplace API answered with a non-2xx status.

    `message` is the human-readable upstream `error` field when present.
    """

    def __init__(self, message: str, *, status_code: int | None = None, path: str = ""):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.path = path


class UpstreamUnavailable(UpstreamError):
    """Connection failure or timeout talking to the upstream API."""
