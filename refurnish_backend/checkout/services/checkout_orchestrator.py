# checkout/services/checkout_orchestrator.py

"""
CHECKOUT ORCHESTRATOR (Cart -> Order)

Sequences one checkout attempt for the selected cart lines.

Flow:
- validate locally (session, shipping address, non-empty selection); nothing
  reaches the network on a validation failure
- CashOnDelivery -> SUBMITTING immediately
- Ewallet        -> AWAITING_EWALLET_CONFIRMATION (payment modal), then
                    SUBMITTING once the modal reports success
- DebitCredit    -> SUBMITTING only when the selector reports valid card
                    details; otherwise back to IDLE with field errors
- SUBMITTING     -> order placement; success evicts exactly the submitted
                    lines from the cart, failure leaves the cart untouched

Hard rules:
- A submit while SUBMITTING or AWAITING_EWALLET_CONFIRMATION is ignored.
- No automatic retry.
- Card details are never sent upstream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable

from cart.services.cart_store import CartStore
from cart.services.pricing import OrderTotals, compute_totals
from checkout.services.checkout_lifecycle import BUSY_STATES, CheckoutState, validate_transition
from checkout.services.exceptions import CheckoutValidationError
from checkout.services.payment_gateway import PaymentGateway
from checkout.services.payment_modal import PaymentModal
from checkout.services.payment_selection import PaymentMode, PaymentSelection
from checkout.services.payment_selector import PaymentSelector
from checkout.services.transaction_ids import (
    CARD_PREFIX,
    COD_PREFIX,
    EWALLET_PREFIX,
    synthesize_transaction_id,
)
from marketplace.auth import AuthSession, require_session
from marketplace.exceptions import UpstreamError, UpstreamUnavailable
from orders.services.placed_order import PlacedOrder
from orders.services.remote import OrdersRemote

logger = logging.getLogger(__name__)

ORDER_FAILED_MESSAGE = "We couldn't place your order. Please try again."


# ============================================================
# VALUE TYPES
# ============================================================


@dataclass(frozen=True)
class OrderDraft:
    selected_item_ids: tuple[str, ...]
    shipping_address: str
    notes: str
    totals: OrderTotals


@dataclass
class CheckoutResult:
    state: CheckoutState
    transaction_id: str = ""
    payment_mode: PaymentMode | None = None
    order: PlacedOrder | None = None
    totals: OrderTotals | None = None
    message: str = ""
    field_errors: dict = field(default_factory=dict)
    evicted_ids: list = field(default_factory=list)
    ignored: bool = False


# ============================================================
# ORCHESTRATOR
# ============================================================


class CheckoutOrchestrator:
    def __init__(
        self,
        *,
        session: AuthSession | None,
        cart: CartStore,
        selector: PaymentSelector,
        orders: OrdersRemote,
        gateway: PaymentGateway,
    ):
        self.session = session
        self.cart = cart
        self.selector = selector
        self.orders = orders
        self.gateway = gateway

        self.state = CheckoutState.IDLE
        self.draft: OrderDraft | None = None
        self.modal: PaymentModal | None = None
        self.transaction_id = ""
        self.last_error = ""
        self.field_errors: dict = {}
        self.order: PlacedOrder | None = None

        self._selection = selector.selection
        self.card_valid = selector.is_valid
        self._unsubscribe: Callable[[], None] | None = None
        self._subscribe()

    # -----------------------------
    # Selector streams
    # -----------------------------

    def _subscribe(self) -> None:
        if self._unsubscribe is not None:
            return
        self._selection = self.selector.selection
        self.card_valid = self.selector.is_valid
        self._unsubscribe = self.selector.subscribe(
            on_value=self._on_selection_changed,
            on_validity=self._on_validity_changed,
        )

    def _release_selector(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def close(self) -> None:
        """Drop the selector subscription and the card details it holds."""
        self._release_selector()
        self.selector.close()

    def _on_selection_changed(self, selection: PaymentSelection) -> None:
        self._selection = selection

    def _on_validity_changed(self, is_valid: bool, errors: dict) -> None:
        self.card_valid = is_valid

    # -----------------------------
    # State
    # -----------------------------

    def _transition(self, target: CheckoutState) -> None:
        validate_transition(from_state=self.state, to_state=target)
        logger.debug(
            "Checkout transition",
            extra={"from": self.state.value, "to": target.value, "transaction_id": self.transaction_id},
        )
        self.state = target

    @property
    def selection(self) -> PaymentSelection:
        return self._selection

    def _result(self, **kwargs) -> CheckoutResult:
        return CheckoutResult(
            state=self.state,
            transaction_id=self.transaction_id,
            payment_mode=self.selection.payment_mode,
            order=self.order,
            totals=self.draft.totals if self.draft else None,
            message=self.last_error,
            field_errors=dict(self.field_errors),
            **kwargs,
        )

    # -----------------------------
    # Entry point
    # -----------------------------

    def submit(self, *, shipping_address: str, notes: str = "") -> CheckoutResult:
        if self.state in BUSY_STATES:
            logger.info("Checkout submit ignored (busy)", extra={"state": self.state.value})
            return CheckoutResult(state=self.state, transaction_id=self.transaction_id, ignored=True)

        if self.state is not CheckoutState.IDLE:
            self._transition(CheckoutState.IDLE)
        self._subscribe()
        self.last_error = ""
        self.field_errors = {}
        self.order = None

        draft = self._build_draft(shipping_address=shipping_address, notes=notes)
        mode = self.selection.payment_mode

        if mode is PaymentMode.DEBIT_CREDIT:
            self.selector.mark_submitted()
            if not self.card_valid:
                self.field_errors = self.selector.visible_errors
                raise CheckoutValidationError(
                    "Please correct your card details.",
                    fields=self.field_errors,
                )

        self.draft = draft

        if mode is PaymentMode.EWALLET:
            self.transaction_id = synthesize_transaction_id(EWALLET_PREFIX)
            self.modal = self._open_modal(draft)
            self._transition(CheckoutState.AWAITING_EWALLET_CONFIRMATION)
            return self._result()

        prefix = CARD_PREFIX if mode is PaymentMode.DEBIT_CREDIT else COD_PREFIX
        self.transaction_id = synthesize_transaction_id(prefix)
        self._transition(CheckoutState.SUBMITTING)
        return self._place_order()

    def _build_draft(self, *, shipping_address: str, notes: str) -> OrderDraft:
        require_session(self.session)

        address = (shipping_address or "").strip()
        if not address:
            raise CheckoutValidationError(
                "Please enter your shipping address.",
                fields={"shipping_address": "Shipping address is required"},
            )

        lines = self.cart.selected_lines
        if not lines:
            raise CheckoutValidationError(
                "Please select at least one item to check out.",
                fields={"selected_items": "Select at least one item"},
            )

        return OrderDraft(
            selected_item_ids=tuple(line.id for line in lines),
            shipping_address=address,
            notes=(notes or "").strip(),
            totals=compute_totals(lines),
        )

    # -----------------------------
    # E-wallet
    # -----------------------------

    def _open_modal(self, draft: OrderDraft) -> PaymentModal:
        return PaymentModal(
            amount=draft.totals.total,
            provider=self.selection.ewallet_option,
            transaction_id=self.transaction_id,
            gateway=self.gateway,
            on_success=self._on_ewallet_success,
        )

    def _on_ewallet_success(self, payload: dict) -> None:
        logger.info(
            "E-wallet payment confirmed",
            extra={"transaction_id": payload.get("transaction_id"), "amount": str(payload.get("amount"))},
        )
        self._transition(CheckoutState.SUBMITTING)
        self._place_order()

    def ewallet_login(self, mobile_number: str) -> bool:
        modal = self._require_modal()
        modal.type_mobile_number(mobile_number)
        return modal.submit_login()

    def ewallet_proceed(self) -> CheckoutResult:
        """Pay inside the modal. On success the order is placed before this returns."""
        modal = self._require_modal()
        modal.proceed()
        if modal.error:
            self.last_error = modal.error
        return self._result()

    def ewallet_back(self) -> None:
        """Confirm step back to the mobile number login."""
        self._require_modal().back_to_login()

    def cancel_ewallet(self) -> CheckoutResult:
        """Close the modal. No order call, no cart change."""
        if self.state is not CheckoutState.AWAITING_EWALLET_CONFIRMATION:
            return self._result()

        modal = self._require_modal()
        modal.dismiss()
        self.modal = None
        self.draft = None
        self._release_selector()
        self._transition(CheckoutState.IDLE)
        return self._result()

    def _require_modal(self) -> PaymentModal:
        if self.state is not CheckoutState.AWAITING_EWALLET_CONFIRMATION or self.modal is None:
            raise CheckoutValidationError("There is no e-wallet payment awaiting confirmation.")
        return self.modal

    # -----------------------------
    # Order placement
    # -----------------------------

    def _place_order(self) -> CheckoutResult:
        draft = self.draft
        try:
            order = self.orders.place_order(
                selected_items=list(draft.selected_item_ids),
                shipping_address=draft.shipping_address,
                notes=draft.notes,
            )
        except UpstreamError as exc:
            logger.error(
                "Order placement failed",
                extra={
                    "transaction_id": self.transaction_id,
                    "status": exc.status_code,
                    "error": exc.message,
                    "items": len(draft.selected_item_ids),
                },
            )
            self.last_error = (
                exc.message if isinstance(exc, UpstreamUnavailable) else (exc.message or ORDER_FAILED_MESSAGE)
            )
            self.modal = None
            self._transition(CheckoutState.FAILED)
            return self._result()

        evicted = self.cart.evict(draft.selected_item_ids)
        self.order = order
        self.modal = None
        self._release_selector()
        self.selector.close()
        self._transition(CheckoutState.SUCCEEDED)

        logger.info(
            "Order placed",
            extra={
                "order_id": order.order_id,
                "transaction_id": self.transaction_id,
                "payment_mode": self.selection.payment_mode.value,
                "delivery_mode": self.selection.delivery_mode.value,
            },
        )
        return self._result(evicted_ids=evicted)

    # -----------------------------
    # Persistence (pending e-wallet checkout across requests)
    # -----------------------------

    def snapshot(self) -> dict:
        draft = self.draft
        return {
            "user_id": self.session.user_id if self.session else "",
            "state": self.state.value,
            "transaction_id": self.transaction_id,
            "selection": self.selection.as_dict(),
            "draft": None if draft is None else {
                "selected_item_ids": list(draft.selected_item_ids),
                "shipping_address": draft.shipping_address,
                "notes": draft.notes,
                "totals": draft.totals.as_dict(),
            },
            "modal": self.modal.snapshot() if self.modal else None,
        }

    def restore(self, data: dict) -> None:
        """Re-hydrate a pending checkout. The session must belong to the same user."""
        session = require_session(self.session)
        if str(data.get("user_id") or "") != session.user_id:
            raise CheckoutValidationError("This checkout belongs to another session.")

        self.selector.update(**(data.get("selection") or {}))
        self.state = CheckoutState(data.get("state") or CheckoutState.IDLE.value)
        self.transaction_id = str(data.get("transaction_id") or "")

        raw_draft = data.get("draft")
        if raw_draft:
            totals = raw_draft.get("totals") or {}
            self.draft = OrderDraft(
                selected_item_ids=tuple(str(i) for i in raw_draft.get("selected_item_ids") or []),
                shipping_address=str(raw_draft.get("shipping_address") or ""),
                notes=str(raw_draft.get("notes") or ""),
                totals=OrderTotals(
                    subtotal=Decimal(totals.get("subtotal") or "0.00"),
                    shipping_fee=Decimal(totals.get("shipping_fee") or "0.00"),
                    total=Decimal(totals.get("total") or "0.00"),
                ),
            )
            # The selection that was submitted is the one that gets evicted on success.
            self.cart.select_only(self.draft.selected_item_ids)

        raw_modal = data.get("modal")
        if raw_modal:
            self.modal = PaymentModal.restore(
                raw_modal,
                gateway=self.gateway,
                on_success=self._on_ewallet_success,
            )
