# cart/services/cart_store.py

"""
CART STORE

Client-visible view over the user's persisted cart (the upstream cart is the
system of record).

Hard rules:
- quantity is an integer in [1, MAX_QUANTITY]; a decrement to 0 removes the
  line instead of persisting a zero-quantity line.
- Per-line mutations are serialized by an in-flight guard: a second mutation
  on the same line while one is in flight is DROPPED (not queued).
- The in-flight status is cleared on every exit path.
- Remote failure leaves local state unchanged (no retry; user re-triggers).
- Selection is local only and never sent upstream.
- Selective eviction after a successful order is the only write coming from
  outside the cart (checkout).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Iterable

from django.conf import settings

from cart.services.pricing import OrderTotals, compute_totals
from marketplace.exceptions import UpstreamError
from marketplace.money import money

logger = logging.getLogger(__name__)


def max_line_quantity() -> int:
    cfg = getattr(settings, "CHECKOUT", {}) or {}
    return int(cfg.get("MAX_LINE_QUANTITY", 99))


@dataclass(frozen=True)
class CartLine:
    id: str
    name: str
    unit_price: Decimal
    quantity: int
    thumbnail_url: str | None = None
    selected: bool = False

    @property
    def line_total(self) -> Decimal:
        return money(self.unit_price * Decimal(self.quantity))


class OperationStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"


class CartRemote(ABC):
    """Cart collaborator (upstream cart endpoints)."""

    @abstractmethod
    def fetch_lines(self) -> list[CartLine]:
        ...

    @abstractmethod
    def update_quantity(self, line_id: str, quantity: int) -> None:
        ...

    @abstractmethod
    def remove(self, line_id: str) -> None:
        ...


class CartStore:
    def __init__(self, *, remote: CartRemote, lines: Iterable[CartLine] = ()):
        self._remote = remote
        self._lines: list[CartLine] = list(lines)
        self._selected: set[str] = {line.id for line in self._lines if line.selected}
        self._status: dict[str, OperationStatus] = {}

    # -----------------------------
    # Read side
    # -----------------------------

    @property
    def lines(self) -> list[CartLine]:
        return [replace(line, selected=line.id in self._selected) for line in self._lines]

    def get(self, line_id) -> CartLine | None:
        line_id = str(line_id)
        for line in self.lines:
            if line.id == line_id:
                return line
        return None

    @property
    def selected_lines(self) -> list[CartLine]:
        return [line for line in self.lines if line.selected]

    @property
    def selected_ids(self) -> list[str]:
        return [line.id for line in self.selected_lines]

    def status(self, line_id) -> OperationStatus:
        return self._status.get(str(line_id), OperationStatus.IDLE)

    def is_loading(self, line_id) -> bool:
        return self.status(line_id) is OperationStatus.IN_FLIGHT

    def totals(self) -> OrderTotals:
        return compute_totals(self.selected_lines)

    # -----------------------------
    # Sync
    # -----------------------------

    def load(self) -> list[CartLine]:
        """Replace local lines with the upstream cart; selection survives for ids still present."""
        fresh = self._remote.fetch_lines()
        self._lines = list(fresh)
        present = {line.id for line in self._lines}
        self._selected &= present
        return self.lines

    # -----------------------------
    # Selection (local only)
    # -----------------------------

    def toggle_selection(self, line_id) -> bool:
        line_id = str(line_id)
        if self._find(line_id) is None:
            return False
        if line_id in self._selected:
            self._selected.discard(line_id)
        else:
            self._selected.add(line_id)
        return line_id in self._selected

    def select_only(self, line_ids: Iterable) -> list[str]:
        """Replace the selection; unknown ids are ignored."""
        wanted = {str(i) for i in line_ids}
        self._selected = {line.id for line in self._lines if line.id in wanted}
        return self.selected_ids

    # -----------------------------
    # Mutations
    # -----------------------------

    def increment(self, line_id) -> bool:
        line_id = str(line_id)
        line = self._find(line_id)
        if line is None:
            return False

        new_qty = min(line.quantity + 1, max_line_quantity())
        return self._mutate(line_id, "increment", lambda: self._apply_update(line_id, new_qty))

    def decrement(self, line_id) -> bool:
        line_id = str(line_id)
        line = self._find(line_id)
        if line is None:
            return False

        new_qty = line.quantity - 1
        if new_qty <= 0:
            return self._mutate(line_id, "decrement", lambda: self._apply_remove(line_id))
        return self._mutate(line_id, "decrement", lambda: self._apply_update(line_id, new_qty))

    def remove_from_cart(self, line_id) -> bool:
        line_id = str(line_id)
        if self._find(line_id) is None:
            return False
        return self._mutate(line_id, "remove", lambda: self._apply_remove(line_id))

    def evict(self, line_ids: Iterable) -> list[str]:
        """
        Selective eviction after a successful order: drop exactly these lines
        (the upstream order placement already pruned the persisted cart).
        """
        doomed = {str(i) for i in line_ids}
        evicted = [line.id for line in self._lines if line.id in doomed]
        self._lines = [line for line in self._lines if line.id not in doomed]
        self._selected -= doomed
        for line_id in evicted:
            self._status.pop(line_id, None)
        return evicted

    # -----------------------------
    # Internals
    # -----------------------------

    def _find(self, line_id: str) -> CartLine | None:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    def _mutate(self, line_id: str, op: str, call) -> bool:
        if self.is_loading(line_id):
            logger.info("Cart mutation dropped (in flight)", extra={"line_id": line_id, "op": op})
            return False

        self._status[line_id] = OperationStatus.IN_FLIGHT
        try:
            call()
        except UpstreamError as exc:
            self._status[line_id] = OperationStatus.FAILED
            logger.error(
                "Cart mutation failed",
                extra={"line_id": line_id, "op": op, "error": exc.message, "status": exc.status_code},
            )
            return False
        finally:
            if self._status.get(line_id) is OperationStatus.IN_FLIGHT:
                self._status[line_id] = OperationStatus.IDLE
        return True

    def _apply_update(self, line_id: str, quantity: int) -> None:
        self._remote.update_quantity(line_id, quantity)
        self._lines = [
            replace(line, quantity=quantity) if line.id == line_id else line
            for line in self._lines
        ]

    def _apply_remove(self, line_id: str) -> None:
        self._remote.remove(line_id)
        self._lines = [line for line in self._lines if line.id != line_id]
        self._selected.discard(line_id)
        self._status.pop(line_id, None)
