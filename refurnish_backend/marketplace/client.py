# marketplace/client.py

"""
UPSTREAM MARKETPLACE CLIENT (JSON over HTTP)

Thin urllib client for the Refurnish marketplace API (the system of record for
carts, orders, products, images and payments).

Rules:
- Every call has a timeout (settings.MARKETPLACE_API["TIMEOUT_SECONDS"]);
  the health check uses its own hard timeout (5s by default).
- Non-2xx -> UpstreamError carrying the upstream `error` message.
- Connection failure / timeout -> UpstreamUnavailable.
- Technical detail is logged here; callers surface `exc.message` to users.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from django.conf import settings

from marketplace.exceptions import UpstreamError, UpstreamUnavailable

logger = logging.getLogger(__name__)


def _api_cfg() -> dict:
    cfg = getattr(settings, "MARKETPLACE_API", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def _safe_preview(text: str, limit: int = 400) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _parse_json(raw: str) -> Any:
    if not (raw or "").strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def _error_message(parsed: Any, fallback: str) -> str:
    if isinstance(parsed, dict):
        msg = parsed.get("error") or parsed.get("message") or parsed.get("detail")
        if msg:
            return str(msg)
    return fallback


def quote_id(value) -> str:
    return quote(str(value), safe="")


def encode_multipart(*, field: str, filename: str, content_type: str, content: bytes) -> tuple[bytes, str]:
    """Single-file multipart/form-data body. Returns (body, content-type header)."""
    boundary = f"----refurnish{uuid.uuid4().hex}"
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + content + tail, f"multipart/form-data; boundary={boundary}"


class MarketplaceClient:
    """
    One instance per request / workflow. The bearer token (if any) is
    attached to every call.
    """

    def __init__(self, *, token: str = "", base_url: str | None = None, timeout: float | None = None):
        cfg = _api_cfg()
        self.base_url = (base_url or cfg.get("BASE_URL") or "http://localhost:8080").rstrip("/")
        self.timeout = float(timeout if timeout is not None else cfg.get("TIMEOUT_SECONDS", 25))
        self.health_timeout = float(cfg.get("HEALTH_TIMEOUT_SECONDS", 5))
        self.token = token or ""

    # -----------------------------
    # Low-level
    # -----------------------------

    def _headers(self, *, content_type: str | None = "application/json") -> dict:
        headers = {"Accept": "application/json"}
        if content_type:
            headers["Content-Type"] = content_type
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, req: Request, *, path: str, timeout: float) -> Any:
        try:
            with urlopen(req, timeout=timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            raw = ""
            try:
                raw = e.read().decode("utf-8", errors="replace")
            except OSError:
                raw = ""
            parsed = _parse_json(raw)
            message = _error_message(parsed, f"Request failed ({e.code})")
            logger.warning(
                "Upstream rejected request",
                extra={"path": path, "status": e.code, "body": _safe_preview(raw)},
            )
            raise UpstreamError(message, status_code=e.code, path=path) from e
        except (URLError, TimeoutError, OSError) as e:
            logger.error("Upstream unreachable", extra={"path": path, "error": str(e)})
            raise UpstreamUnavailable(
                "The marketplace service is currently unavailable. Please try again later.",
                path=path,
            ) from e

        parsed = _parse_json(raw)
        if parsed is None and raw.strip():
            logger.error("Upstream returned non-JSON", extra={"path": path, "body": _safe_preview(raw)})
            raise UpstreamError("Unexpected response from the marketplace service.", path=path)
        return parsed

    def request_json(self, method: str, path: str, *, body: dict | None = None, timeout: float | None = None) -> Any:
        data = None
        if body is not None:
            data = json.dumps(body, ensure_ascii=False).encode("utf-8")

        req = Request(
            f"{self.base_url}{path}",
            data=data,
            headers=self._headers(),
            method=method,
        )
        return self._send(req, path=path, timeout=timeout if timeout is not None else self.timeout)

    def get(self, path: str, **kwargs) -> Any:
        return self.request_json("GET", path, **kwargs)

    def post(self, path: str, body: dict | None = None, **kwargs) -> Any:
        return self.request_json("POST", path, body=body or {}, **kwargs)

    def put(self, path: str, body: dict | None = None, **kwargs) -> Any:
        return self.request_json("PUT", path, body=body or {}, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request_json("DELETE", path, **kwargs)

    def upload(self, path: str, *, field: str, filename: str, content_type: str, content: bytes) -> Any:
        body, header = encode_multipart(
            field=field, filename=filename, content_type=content_type, content=content
        )
        req = Request(
            f"{self.base_url}{path}",
            data=body,
            headers=self._headers(content_type=header),
            method="POST",
        )
        return self._send(req, path=path, timeout=self.timeout)

    # -----------------------------
    # Health check
    # -----------------------------

    def is_healthy(self) -> bool:
        """GET / with a hard timeout. Any failure means unhealthy."""
        req = Request(f"{self.base_url}/", headers={"Accept": "application/json"}, method="GET")
        try:
            with urlopen(req, timeout=self.health_timeout) as resp:
                return 200 <= int(resp.status) < 300
        except (HTTPError, URLError, TimeoutError, OSError) as e:
            logger.info("Backend health check failed", extra={"error": str(e)})
            return False
