# cart/tests/test_cart_api.py

from __future__ import annotations

from unittest.mock import patch

from django.core.cache import cache
from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.models import TokenUser

from cart.services.cart_store import CartStore
from cart.tests.test_cart_store import FakeCartRemote, _line
from marketplace.exceptions import UpstreamError, UpstreamUnavailable


class CartApiTests(SimpleTestCase):
    """
    GUARANTEES:
    - Totals are computed server-side for the selected lines only
    - A busy line answers 409 without calling upstream
    - Upstream failures are normalized into {"error": {...}}
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = TokenUser({"_id": "u1", "email": "buyer@example.com", "firstName": "Ana"})
        self.client.force_authenticate(user=self.user, token="tok")

        self.remote = FakeCartRemote([_line("A", price="1000.00", qty=2), _line("B", price="500.00")])
        patcher = patch("cart.views.build_cart_store", side_effect=lambda session: CartStore(remote=self.remote))
        self.build_store = patcher.start()
        self.addCleanup(patcher.stop)

    # =====================================================
    # READ
    # =====================================================

    def test_get_cart_with_selection(self):
        res = self.client.get(reverse("cart"), {"selected": "A,B"})

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["selected_ids"], ["A", "B"])
        self.assertEqual(res.data["item_count"], 3)
        self.assertEqual(res.data["totals"]["subtotal"], "2500.00")
        self.assertEqual(res.data["totals"]["shipping_fee"], "150.00")
        self.assertEqual(res.data["totals"]["total"], "2650.00")

    def test_get_cart_without_selection_has_zero_totals(self):
        res = self.client.get(reverse("cart"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["totals"]["total"], "0.00")

    def test_anonymous_is_rejected(self):
        anon = APIClient()
        res = anon.get(reverse("cart"))

        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_upstream_unavailable_is_503(self):
        with patch.object(self.remote, "fetch_lines", side_effect=UpstreamUnavailable("down")):
            res = self.client.get(reverse("cart"))

        self.assertEqual(res.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(res.data["error"]["code"], "SERVICE_UNAVAILABLE")

    # =====================================================
    # MUTATIONS
    # =====================================================

    def test_increment_line(self):
        res = self.client.post(
            reverse("cart-line-increment", args=["A"]), {"selected": ["A"]}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(self.remote.updates, [("A", 3)])
        self.assertEqual(res.data["totals"]["subtotal"], "3000.00")

    def test_decrement_last_unit_removes_line(self):
        res = self.client.post(reverse("cart-line-decrement", args=["B"]), {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(self.remote.removals, ["B"])
        self.assertEqual([line["id"] for line in res.data["lines"]], ["A"])

    def test_remove_line(self):
        res = self.client.delete(reverse("cart-line", args=["A"]))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(self.remote.removals, ["A"])

    def test_unknown_line_is_404(self):
        res = self.client.post(reverse("cart-line-increment", args=["Z"]), {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "LINE_NOT_FOUND")

    def test_busy_line_is_rejected(self):
        cache.add("cart:line-lock:u1:A", "1", timeout=30)

        res = self.client.post(reverse("cart-line-increment", args=["A"]), {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "IN_FLIGHT")
        self.assertEqual(self.remote.updates, [])

    def test_failed_mutation_is_502_and_releases_lock(self):
        self.remote.fail_with = UpstreamError("nope", status_code=500)

        res = self.client.post(reverse("cart-line-increment", args=["A"]), {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(res.data["error"]["code"], "CART_UPDATE_FAILED")
        self.assertIsNone(cache.get("cart:line-lock:u1:A"))

    def test_second_increment_while_first_reads_cart_is_rejected(self):
        nested = []
        fetch = self.remote.fetch_lines

        def fetch_during_first_request():
            if not nested:
                nested.append(self.client.post(reverse("cart-line-increment", args=["A"]), {}, format="json"))
            return fetch()

        with patch.object(self.remote, "fetch_lines", side_effect=fetch_during_first_request):
            res = self.client.post(reverse("cart-line-increment", args=["A"]), {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(nested[0].status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(self.remote.updates, [("A", 3)])
