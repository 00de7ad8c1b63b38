# marketplace/tests/test_client.py

from __future__ import annotations

import io
import json
from decimal import Decimal
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

from django.test import SimpleTestCase, override_settings

from marketplace.api import upstream_error_response
from marketplace.auth import AuthSession, require_session
from marketplace.client import MarketplaceClient, encode_multipart, quote_id
from marketplace.exceptions import NotAuthenticatedError, UpstreamError, UpstreamUnavailable
from marketplace.money import money


def _response(body, *, status=200):
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    ctx = MagicMock()
    ctx.__enter__.return_value = resp
    ctx.__exit__.return_value = False
    return ctx


def _http_error(code, body):
    return HTTPError(
        "http://upstream.test/x",
        code,
        "error",
        {},
        io.BytesIO(json.dumps(body).encode("utf-8")),
    )


@override_settings(
    MARKETPLACE_API={
        "BASE_URL": "http://upstream.test",
        "TIMEOUT_SECONDS": 3,
        "HEALTH_TIMEOUT_SECONDS": 1,
    }
)
class MarketplaceClientTests(SimpleTestCase):
    """
    GUARANTEES:
    - Bearer token is attached to every call
    - Upstream `error` field becomes the UpstreamError message
    - Transport failures become UpstreamUnavailable
    - Health check never raises
    """

    # =====================================================
    # REQUESTS
    # =====================================================

    @patch("marketplace.client.urlopen")
    def test_get_sends_bearer_token_and_parses_json(self, mock_urlopen):
        mock_urlopen.return_value = _response({"items": []})

        data = MarketplaceClient(token="tok").get("/api/carts")

        self.assertEqual(data, {"items": []})
        req = mock_urlopen.call_args[0][0]
        self.assertEqual(req.full_url, "http://upstream.test/api/carts")
        self.assertEqual(req.get_method(), "GET")
        self.assertEqual(req.get_header("Authorization"), "Bearer tok")
        self.assertEqual(mock_urlopen.call_args[1]["timeout"], 3.0)

    @patch("marketplace.client.urlopen")
    def test_post_encodes_json_body(self, mock_urlopen):
        mock_urlopen.return_value = _response({"ok": True})

        MarketplaceClient().post("/api/orders", {"selectedItems": ["a"]})

        req = mock_urlopen.call_args[0][0]
        self.assertEqual(req.get_method(), "POST")
        self.assertEqual(json.loads(req.data.decode("utf-8")), {"selectedItems": ["a"]})
        self.assertIsNone(req.get_header("Authorization"))

    @patch("marketplace.client.urlopen")
    def test_empty_body_returns_none(self, mock_urlopen):
        mock_urlopen.return_value = _response(b"")

        self.assertIsNone(MarketplaceClient().delete("/api/carts/item/1"))

    @patch("marketplace.client.urlopen")
    def test_http_error_carries_upstream_message(self, mock_urlopen):
        mock_urlopen.side_effect = _http_error(409, {"error": "Item is out of stock"})

        with self.assertRaises(UpstreamError) as ctx:
            MarketplaceClient().post("/api/orders", {})

        self.assertEqual(ctx.exception.message, "Item is out of stock")
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.path, "/api/orders")

    @patch("marketplace.client.urlopen")
    def test_connection_failure_is_unavailable(self, mock_urlopen):
        mock_urlopen.side_effect = URLError("connection refused")

        with self.assertRaises(UpstreamUnavailable):
            MarketplaceClient().get("/api/orders/my-orders")

    @patch("marketplace.client.urlopen")
    def test_non_json_body_is_rejected(self, mock_urlopen):
        mock_urlopen.return_value = _response(b"<html>oops</html>")

        with self.assertRaises(UpstreamError):
            MarketplaceClient().get("/api/carts")

    # =====================================================
    # HEALTH
    # =====================================================

    @patch("marketplace.client.urlopen")
    def test_health_check_uses_health_timeout(self, mock_urlopen):
        mock_urlopen.return_value = _response({"status": "ok"})

        self.assertTrue(MarketplaceClient().is_healthy())
        self.assertEqual(mock_urlopen.call_args[1]["timeout"], 1.0)

    @patch("marketplace.client.urlopen")
    def test_health_check_failure_is_false(self, mock_urlopen):
        mock_urlopen.side_effect = TimeoutError()

        self.assertFalse(MarketplaceClient().is_healthy())


class MultipartAndQuotingTests(SimpleTestCase):
    def test_encode_multipart_contains_field_and_content(self):
        body, header = encode_multipart(
            field="image", filename="chair.png", content_type="image/png", content=b"PNGDATA"
        )

        self.assertTrue(header.startswith("multipart/form-data; boundary="))
        self.assertIn(b'name="image"; filename="chair.png"', body)
        self.assertIn(b"Content-Type: image/png", body)
        self.assertIn(b"PNGDATA", body)

    def test_quote_id_escapes_slashes(self):
        self.assertEqual(quote_id("a/b c"), "a%2Fb%20c")


class MoneyAndErrorMappingTests(SimpleTestCase):
    def test_money_quantizes_to_two_places(self):
        self.assertEqual(money("1500"), Decimal("1500.00"))
        self.assertEqual(money(2.005), Decimal("2.01"))
        self.assertEqual(money(None), Decimal("0.00"))

    def test_money_rejects_garbage(self):
        with self.assertRaises(ValueError):
            money("abc")

    def test_unavailable_maps_to_503(self):
        resp = upstream_error_response(UpstreamUnavailable("down"))
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.data["error"]["code"], "SERVICE_UNAVAILABLE")

    def test_client_errors_pass_through(self):
        resp = upstream_error_response(UpstreamError("gone", status_code=404))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["error"]["message"], "gone")

    def test_auth_errors_pass_through(self):
        resp = upstream_error_response(UpstreamError("expired", status_code=401))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.data["error"]["code"], "NOT_AUTHORIZED")

    def test_server_errors_become_bad_gateway(self):
        resp = upstream_error_response(UpstreamError("boom", status_code=500))
        self.assertEqual(resp.status_code, 502)


class AuthSessionTests(SimpleTestCase):
    def test_require_session_rejects_missing_token(self):
        with self.assertRaises(NotAuthenticatedError):
            require_session(AuthSession(user_id="u1", token=""))

    def test_require_session_rejects_none(self):
        with self.assertRaises(NotAuthenticatedError):
            require_session(None)

    def test_require_session_returns_session(self):
        session = AuthSession(user_id="u1", token="tok")
        self.assertIs(require_session(session), session)
