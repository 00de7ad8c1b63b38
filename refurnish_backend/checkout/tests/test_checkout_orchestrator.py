# checkout/tests/test_checkout_orchestrator.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from cart.services.cart_store import CartStore
from cart.tests.test_cart_store import FakeCartRemote, _line
from checkout.services.checkout_lifecycle import CheckoutState
from checkout.services.checkout_orchestrator import CheckoutOrchestrator
from checkout.services.exceptions import CheckoutValidationError
from checkout.services.payment_gateway import MockPaymentGateway
from checkout.services.payment_modal import ModalStep
from checkout.services.payment_selection import PaymentMode
from checkout.services.payment_selector import PaymentSelector
from checkout.signals import validity_changed, value_changed
from marketplace.auth import AuthSession
from marketplace.exceptions import NotAuthenticatedError, UpstreamError
from orders.services.placed_order import OrderStatus, PlacedOrder
from orders.services.remote import OrdersRemote


class FakeOrdersRemote(OrdersRemote):
    def __init__(self):
        self.placed = []
        self.fail_with = None
        self.during_place = None

    def place_order(self, *, selected_items, shipping_address, notes=""):
        if self.during_place is not None:
            self.during_place()
        if self.fail_with is not None:
            raise self.fail_with
        self.placed.append(
            {"selected_items": list(selected_items), "shipping_address": shipping_address, "notes": notes}
        )
        return PlacedOrder.from_payload(
            {
                "orderId": f"ORD-{len(self.placed)}",
                "status": "Preparing to Ship",
                "totalAmount": 1500,
                "shippingFee": 150,
                "items": [{"productId": i, "name": i, "quantity": 1, "price": 1350} for i in selected_items],
            }
        )

    def list_mine(self):
        return []

    def get(self, order_id):
        raise UpstreamError("Order not found", status_code=404)


SESSION = AuthSession(user_id="u1", token="tok", first_name="Ana")

VALID_CARD = {
    "holder_name": "Juan Dela Cruz",
    "number": "4539578763621486",
    "expiry": "12/30",
    "cvc": "123",
}


class CheckoutOrchestratorTests(SimpleTestCase):
    """
    Tests for one checkout attempt (cart -> order).

    GUARANTEES:
    - Validation failures never reach the network
    - Success evicts exactly the submitted lines
    - Failure leaves the cart untouched
    - A submit while busy is ignored
    """

    def setUp(self):
        self.cart_remote = FakeCartRemote(
            [_line("A", price="1350.00"), _line("B", price="500.00"), _line("C", price="200.00")]
        )
        self.cart = CartStore(remote=self.cart_remote)
        self.cart.load()
        self.cart.select_only(["A"])

        self.selector = PaymentSelector(today=lambda: date(2026, 10, 19))
        self.orders = FakeOrdersRemote()
        self.gateway = MockPaymentGateway()
        self.checkout = self._orchestrator()
        self.addCleanup(self.selector.close)

    def _orchestrator(self, session=SESSION):
        return CheckoutOrchestrator(
            session=session,
            cart=self.cart,
            selector=self.selector,
            orders=self.orders,
            gateway=self.gateway,
        )

    # =====================================================
    # VALIDATION
    # =====================================================

    def test_requires_session(self):
        with self.assertRaises(NotAuthenticatedError):
            self._orchestrator(session=None).submit(shipping_address="Manila")
        self.assertEqual(self.orders.placed, [])

    def test_requires_shipping_address(self):
        with self.assertRaises(CheckoutValidationError) as ctx:
            self.checkout.submit(shipping_address="   ")

        self.assertIn("shipping_address", ctx.exception.fields)
        self.assertEqual(self.checkout.state, CheckoutState.IDLE)
        self.assertEqual(self.orders.placed, [])

    def test_requires_selected_items(self):
        self.cart.select_only([])

        with self.assertRaises(CheckoutValidationError) as ctx:
            self.checkout.submit(shipping_address="Manila")

        self.assertIn("selected_items", ctx.exception.fields)

    # =====================================================
    # SELECTOR STREAMS
    # =====================================================

    def test_tracks_selector_streams(self):
        self.assertTrue(value_changed.has_listeners(self.selector))
        self.assertTrue(validity_changed.has_listeners(self.selector))

        self.selector.update(payment_mode=PaymentMode.DEBIT_CREDIT)
        self.assertIs(self.checkout.selection.payment_mode, PaymentMode.DEBIT_CREDIT)
        self.assertFalse(self.checkout.card_valid)

        self.selector.set_card(**VALID_CARD)
        self.assertTrue(self.checkout.card_valid)

    def test_unsubscribes_after_success(self):
        self.checkout.submit(shipping_address="Manila")

        self.assertFalse(value_changed.has_listeners(self.selector))
        self.assertFalse(validity_changed.has_listeners(self.selector))

    def test_unsubscribes_on_cancel_and_resubscribes_on_submit(self):
        self.selector.update(payment_mode=PaymentMode.EWALLET)
        self.checkout.submit(shipping_address="Manila")
        self.checkout.cancel_ewallet()

        self.assertFalse(value_changed.has_listeners(self.selector))

        self.selector.update(payment_mode=PaymentMode.CASH_ON_DELIVERY)
        result = self.checkout.submit(shipping_address="Manila")

        self.assertEqual(result.state, CheckoutState.SUCCEEDED)
        self.assertTrue(result.transaction_id.startswith("cod_"))

    # =====================================================
    # CASH ON DELIVERY
    # =====================================================

    def test_cod_places_order_without_modal(self):
        result = self.checkout.submit(shipping_address=" 12 Rizal St, Manila ", notes="Leave at gate")

        self.assertEqual(result.state, CheckoutState.SUCCEEDED)
        self.assertTrue(result.transaction_id.startswith("cod_"))
        self.assertIsNone(self.checkout.modal)
        self.assertFalse(result.ignored)
        self.assertEqual(
            self.orders.placed,
            [{"selected_items": ["A"], "shipping_address": "12 Rizal St, Manila", "notes": "Leave at gate"}],
        )
        self.assertEqual(result.evicted_ids, ["A"])
        self.assertEqual([line.id for line in self.cart.lines], ["B", "C"])
        self.assertEqual(result.totals.total, Decimal("1500.00"))

    def test_success_evicts_only_submitted_lines(self):
        self.cart.select_only(["A", "B"])

        self.checkout.submit(shipping_address="Manila")

        self.assertEqual([line.id for line in self.cart.lines], ["C"])

    def test_order_failure_leaves_cart_untouched(self):
        self.orders.fail_with = UpstreamError("Item is out of stock", status_code=409)

        result = self.checkout.submit(shipping_address="Manila")

        self.assertEqual(result.state, CheckoutState.FAILED)
        self.assertEqual(result.message, "Item is out of stock")
        self.assertEqual([line.id for line in self.cart.lines], ["A", "B", "C"])
        self.assertEqual(self.cart.selected_ids, ["A"])

    def test_resubmit_after_failure(self):
        self.orders.fail_with = UpstreamError("boom", status_code=500)
        self.checkout.submit(shipping_address="Manila")

        self.orders.fail_with = None
        result = self.checkout.submit(shipping_address="Manila")

        self.assertEqual(result.state, CheckoutState.SUCCEEDED)

    def test_submit_while_submitting_is_ignored(self):
        nested = []
        self.orders.during_place = lambda: nested.append(self.checkout.submit(shipping_address="Manila"))

        self.checkout.submit(shipping_address="Manila")

        self.assertEqual(len(nested), 1)
        self.assertTrue(nested[0].ignored)
        self.assertEqual(len(self.orders.placed), 1)

    # =====================================================
    # DEBIT / CREDIT
    # =====================================================

    def test_invalid_card_blocks_then_valid_card_submits(self):
        self.selector.update(payment_mode=PaymentMode.DEBIT_CREDIT)
        self.selector.set_card(**{**VALID_CARD, "number": "4539578763621487"})

        with self.assertRaises(CheckoutValidationError) as ctx:
            self.checkout.submit(shipping_address="Manila")
        self.assertIn("number", ctx.exception.fields)
        self.assertEqual(self.orders.placed, [])

        self.selector.set_card(number=VALID_CARD["number"])
        result = self.checkout.submit(shipping_address="Manila")

        self.assertEqual(result.state, CheckoutState.SUCCEEDED)
        self.assertTrue(result.transaction_id.startswith("card_"))
        self.assertEqual(len(self.orders.placed), 1)
        # card details are dropped once the order is placed
        self.assertEqual(self.selector.card.number, "")

    # =====================================================
    # E-WALLET
    # =====================================================

    def test_ewallet_flow(self):
        self.selector.update(payment_mode=PaymentMode.EWALLET)

        result = self.checkout.submit(shipping_address="Manila")
        self.assertEqual(result.state, CheckoutState.AWAITING_EWALLET_CONFIRMATION)
        self.assertTrue(result.transaction_id.startswith("txn_"))
        self.assertEqual(self.checkout.modal.amount, Decimal("1500.00"))

        self.assertFalse(self.checkout.ewallet_login("917123456"))
        self.assertEqual(self.checkout.modal.step, ModalStep.LOGIN)
        self.assertEqual(self.orders.placed, [])

        self.assertTrue(self.checkout.ewallet_login("9171234567"))
        result = self.checkout.ewallet_proceed()

        self.assertEqual(result.state, CheckoutState.SUCCEEDED)
        self.assertEqual(self.gateway.calls[0]["amount"], Decimal("1500.00"))
        self.assertEqual(len(self.orders.placed), 1)
        self.assertIsNone(self.cart.get("A"))

    def test_ewallet_submit_again_is_ignored(self):
        self.selector.update(payment_mode=PaymentMode.EWALLET)
        self.checkout.submit(shipping_address="Manila")

        self.assertTrue(self.checkout.submit(shipping_address="Manila").ignored)

    def test_ewallet_decline_keeps_modal_open(self):
        self.cart_remote.lines = [_line("A", price="100000.00")]
        self.cart.load()
        self.cart.select_only(["A"])
        self.selector.update(payment_mode=PaymentMode.EWALLET)
        self.checkout.submit(shipping_address="Manila")
        self.checkout.ewallet_login("9171234567")

        result = self.checkout.ewallet_proceed()

        self.assertEqual(result.state, CheckoutState.AWAITING_EWALLET_CONFIRMATION)
        self.assertTrue(result.message)
        self.assertEqual(self.checkout.modal.step, ModalStep.CONFIRM)
        self.assertEqual(self.orders.placed, [])

    def test_cancel_ewallet(self):
        self.selector.update(payment_mode=PaymentMode.EWALLET)
        self.checkout.submit(shipping_address="Manila")

        result = self.checkout.cancel_ewallet()

        self.assertEqual(result.state, CheckoutState.IDLE)
        self.assertIsNone(self.checkout.modal)
        self.assertEqual(self.orders.placed, [])
        self.assertEqual(self.cart.selected_ids, ["A"])

    def test_snapshot_restore_continues_flow(self):
        self.selector.update(payment_mode=PaymentMode.EWALLET)
        self.checkout.submit(shipping_address="Manila")
        self.checkout.ewallet_login("9171234567")
        snapshot = self.checkout.snapshot()

        cart = CartStore(remote=self.cart_remote)
        cart.load()
        restored = CheckoutOrchestrator(
            session=SESSION,
            cart=cart,
            selector=PaymentSelector(),
            orders=self.orders,
            gateway=self.gateway,
        )
        restored.restore(snapshot)
        result = restored.ewallet_proceed()

        self.assertEqual(result.state, CheckoutState.SUCCEEDED)
        self.assertEqual(self.orders.placed[0]["selected_items"], ["A"])
        self.assertIsNone(cart.get("A"))

    def test_restore_rejects_other_user(self):
        self.selector.update(payment_mode=PaymentMode.EWALLET)
        self.checkout.submit(shipping_address="Manila")
        snapshot = self.checkout.snapshot()

        other = self._orchestrator(session=AuthSession(user_id="u2", token="tok2"))
        with self.assertRaises(CheckoutValidationError):
            other.restore(snapshot)


class PlacedOrderTests(SimpleTestCase):
    def test_display_subtotal_and_unknown_status(self):
        order = PlacedOrder.from_payload(
            {"_id": "o1", "status": "Lost", "totalAmount": "2650", "shippingFee": "150"}
        )

        self.assertEqual(order.order_id, "o1")
        self.assertEqual(order.status, OrderStatus.PREPARING_TO_SHIP)
        self.assertEqual(order.display_subtotal, Decimal("2500.00"))
