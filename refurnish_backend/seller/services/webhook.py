# seller/services/webhook.py

from __future__ import annotations

import hashlib
import hmac

from django.conf import settings

SIGNATURE_HEADER = "X-Refurnish-Signature"


def _get_secret() -> str:
    return str(getattr(settings, "NOTIFICATIONS_WEBHOOK_SECRET", "") or "").strip()


def sign_payload(raw_body: bytes, *, secret: str | None = None) -> str:
    key = (secret if secret is not None else _get_secret()).encode("utf-8")
    return hmac.new(key, raw_body or b"", hashlib.sha512).hexdigest()


def verify_notification_signature(*, raw_body: bytes, signature: str | None) -> bool:
    """HMAC-SHA512 over the raw body. No configured secret means nothing verifies."""
    if not signature or not _get_secret():
        return False
    return hmac.compare_digest(sign_payload(raw_body), str(signature).strip())
