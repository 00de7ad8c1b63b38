# orders/services/order_tracker.py

"""
ORDER TRACKER

Read-only view of the signed-in user's placed orders.

Rules:
- Health check first (GET / with a hard timeout). Unhealthy -> UNAVAILABLE
  and the orders fetch is suppressed.
- Fetch once per session change, and on explicit retry(). No polling.
- UNAVAILABLE, ERROR, EMPTY and READY are distinct states.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from marketplace.auth import AuthSession, require_session
from marketplace.exceptions import UpstreamError
from orders.services.placed_order import PlacedOrder
from orders.services.remote import OrdersRemote

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Order tracking is temporarily unavailable. Please try again later."


class TrackerState(str, Enum):
    UNAVAILABLE = "unavailable"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


class OrderTracker:
    def __init__(
        self,
        *,
        remote_factory: Callable[[AuthSession], OrdersRemote],
        health_check: Callable[[], bool],
        session: AuthSession | None = None,
    ):
        self._remote_factory = remote_factory
        self._health_check = health_check
        self._session: AuthSession | None = session

        self.orders: list[PlacedOrder] = []
        self.state = TrackerState.EMPTY
        self.error = ""
        self.is_backend_healthy = True

    @property
    def session(self) -> AuthSession | None:
        return self._session

    def set_session(self, session: AuthSession | None) -> TrackerState:
        """Fetch once when the signed-in user (or token) changes."""
        if session == self._session:
            return self.state
        self._session = session
        return self.refresh()

    def retry(self) -> TrackerState:
        return self.refresh()

    def refresh(self) -> TrackerState:
        self.error = ""

        if self._session is None or not self._session.is_authenticated:
            self.orders = []
            self.state = TrackerState.EMPTY
            return self.state

        self.is_backend_healthy = bool(self._health_check())
        if not self.is_backend_healthy:
            self.orders = []
            self.error = UNAVAILABLE_MESSAGE
            self.state = TrackerState.UNAVAILABLE
            return self.state

        try:
            orders = self._remote_factory(self._session).list_mine()
        except UpstreamError as exc:
            logger.error(
                "Fetching orders failed",
                extra={"user_id": self._session.user_id, "status": exc.status_code, "error": exc.message},
            )
            self.orders = []
            self.error = exc.message or "Failed to fetch orders"
            self.state = TrackerState.ERROR
            return self.state

        self.orders = list(orders)
        self.state = TrackerState.READY if self.orders else TrackerState.EMPTY
        return self.state

    def get_order(self, order_id: str) -> PlacedOrder:
        """Single order lookup. Raises NotAuthenticatedError / UpstreamError."""
        session = require_session(self._session)
        return self._remote_factory(session).get(order_id)
