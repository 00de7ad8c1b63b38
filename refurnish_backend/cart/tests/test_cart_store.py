# cart/tests/test_cart_store.py

from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase

from cart.services.cart_store import CartLine, CartRemote, CartStore, OperationStatus
from cart.services.pricing import compute_totals
from cart.services.remote import parse_cart_line
from marketplace.exceptions import UpstreamError


class FakeCartRemote(CartRemote):
    def __init__(self, lines=()):
        self.lines = list(lines)
        self.updates = []
        self.removals = []
        self.fail_with = None
        self.on_call = None

    def fetch_lines(self):
        return list(self.lines)

    def update_quantity(self, line_id, quantity):
        self._maybe_fail()
        self.updates.append((line_id, quantity))

    def remove(self, line_id):
        self._maybe_fail()
        self.removals.append(line_id)

    def _maybe_fail(self):
        if self.on_call is not None:
            self.on_call()
        if self.fail_with is not None:
            raise self.fail_with


def _line(line_id, *, price="1000.00", qty=1):
    return CartLine(id=line_id, name=f"Item {line_id}", unit_price=Decimal(price), quantity=qty)


class CartStoreTests(SimpleTestCase):
    """
    Tests for cart line mutations.

    GUARANTEES:
    - Quantity stays within [1, 99]; decrement to 0 removes the line
    - Concurrent mutations on one line are dropped, not queued
    - Remote failure leaves local state untouched
    - Eviction removes exactly the given lines
    """

    def setUp(self):
        self.remote = FakeCartRemote([_line("A", qty=1), _line("B", qty=3), _line("C", price="500.00")])
        self.store = CartStore(remote=self.remote)
        self.store.load()

    # =====================================================
    # DECREMENT
    # =====================================================

    def test_decrement_at_one_removes_line_and_selection(self):
        self.store.select_only(["A", "B"])

        self.assertTrue(self.store.decrement("A"))

        self.assertIsNone(self.store.get("A"))
        self.assertEqual(self.store.selected_ids, ["B"])
        self.assertEqual(self.remote.removals, ["A"])
        self.assertEqual(self.remote.updates, [])

    def test_decrement_above_one_keeps_selection(self):
        self.store.select_only(["B"])

        self.assertTrue(self.store.decrement("B"))

        self.assertEqual(self.store.get("B").quantity, 2)
        self.assertTrue(self.store.get("B").selected)
        self.assertEqual(self.remote.updates, [("B", 2)])

    # =====================================================
    # INCREMENT
    # =====================================================

    def test_increment_caps_at_max_quantity(self):
        store = CartStore(remote=self.remote, lines=[_line("X", qty=99)])

        store.increment("X")

        self.assertEqual(store.get("X").quantity, 99)
        self.assertEqual(self.remote.updates, [("X", 99)])

    def test_increment_unknown_line_is_noop(self):
        self.assertFalse(self.store.increment("nope"))
        self.assertEqual(self.remote.updates, [])

    # =====================================================
    # IN-FLIGHT GUARD
    # =====================================================

    def test_second_mutation_while_in_flight_is_dropped(self):
        nested = []

        def reenter():
            self.remote.on_call = None
            nested.append(self.store.increment("B"))
            self.assertEqual(self.store.status("B"), OperationStatus.IN_FLIGHT)

        self.remote.on_call = reenter

        self.assertTrue(self.store.increment("B"))

        self.assertEqual(nested, [False])
        self.assertEqual(self.remote.updates, [("B", 4)])
        self.assertEqual(self.store.get("B").quantity, 4)
        self.assertEqual(self.store.status("B"), OperationStatus.IDLE)

    # =====================================================
    # FAILURE
    # =====================================================

    def test_remote_failure_leaves_cart_unchanged(self):
        self.remote.fail_with = UpstreamError("Cart update failed", status_code=500)

        self.assertFalse(self.store.decrement("A"))

        self.assertEqual(self.store.get("A").quantity, 1)
        self.assertEqual(self.store.status("A"), OperationStatus.FAILED)

    def test_failed_line_can_be_retried(self):
        self.remote.fail_with = UpstreamError("Cart update failed", status_code=500)
        self.store.increment("B")

        self.remote.fail_with = None
        self.assertTrue(self.store.increment("B"))
        self.assertEqual(self.store.get("B").quantity, 4)
        self.assertEqual(self.store.status("B"), OperationStatus.IDLE)

    # =====================================================
    # SELECTION + EVICTION
    # =====================================================

    def test_toggle_selection(self):
        self.assertTrue(self.store.toggle_selection("C"))
        self.assertFalse(self.store.toggle_selection("C"))
        self.assertFalse(self.store.toggle_selection("missing"))

    def test_evict_removes_only_given_lines(self):
        self.store.select_only(["A", "B", "C"])

        evicted = self.store.evict(["A", "B"])

        self.assertEqual(evicted, ["A", "B"])
        self.assertEqual([line.id for line in self.store.lines], ["C"])
        self.assertEqual(self.store.selected_ids, ["C"])

    def test_load_keeps_selection_for_present_lines(self):
        self.store.select_only(["A", "C"])
        self.remote.lines = [_line("C", price="500.00")]

        self.store.load()

        self.assertEqual(self.store.selected_ids, ["C"])


class PricingTests(SimpleTestCase):
    def test_totals_for_selected_lines(self):
        totals = compute_totals([_line("A", price="1000.00", qty=2), _line("B", price="500.00")])

        self.assertEqual(totals.subtotal, Decimal("2500.00"))
        self.assertEqual(totals.shipping_fee, Decimal("150.00"))
        self.assertEqual(totals.total, Decimal("2650.00"))

    def test_empty_selection_has_no_shipping(self):
        totals = compute_totals([])

        self.assertEqual(totals.subtotal, Decimal("0.00"))
        self.assertEqual(totals.shipping_fee, Decimal("0.00"))
        self.assertEqual(totals.total, Decimal("0.00"))

    def test_store_totals_follow_selection(self):
        store = CartStore(remote=FakeCartRemote(), lines=[_line("A", qty=2), _line("B", price="500.00")])
        store.select_only(["B"])

        self.assertEqual(store.totals().total, Decimal("650.00"))


class CartLineParsingTests(SimpleTestCase):
    def test_prefers_numeric_price(self):
        line = parse_cart_line({"productId": "p1", "name": "Sofa", "price": "₱1,500", "priceNum": 1500, "quantity": 2})

        self.assertEqual(line.id, "p1")
        self.assertEqual(line.unit_price, Decimal("1500.00"))
        self.assertEqual(line.quantity, 2)

    def test_skips_lines_without_quantity(self):
        self.assertIsNone(parse_cart_line({"productId": "p1", "quantity": 0}))
        self.assertIsNone(parse_cart_line({"quantity": 1}))
