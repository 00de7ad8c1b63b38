# checkout/services/pending.py

"""
PENDING E-WALLET CHECKOUTS (Django cache)

An e-wallet checkout spans several requests (submit -> login -> proceed).
Between requests the orchestrator snapshot lives in the cache, keyed by the
user that started it and its transaction id.

Transaction ids are timestamp-derived and may repeat across users, so the
user id is always part of the key.
"""

from __future__ import annotations

from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache


def _ttl() -> int:
    cfg = getattr(settings, "CHECKOUT", {}) or {}
    return int(cfg.get("EWALLET_PENDING_TTL", 15 * 60))


def _key(transaction_id: str, user_id: str) -> str:
    return f"checkout:ewallet:{user_id}:{transaction_id}"


def save_pending(snapshot: dict) -> None:
    key = _key(snapshot["transaction_id"], str(snapshot["user_id"]))
    cache.set(key, snapshot, timeout=_ttl())


def load_pending(transaction_id: str, *, user_id: str) -> dict | None:
    snapshot = cache.get(_key(transaction_id, str(user_id)))
    if not isinstance(snapshot, dict):
        return None
    if str(snapshot.get("user_id") or "") != str(user_id):
        return None
    return snapshot


def discard_pending(transaction_id: str, *, user_id: str) -> None:
    cache.delete(_key(transaction_id, str(user_id)))


@contextmanager
def processing_lock(transaction_id: str, *, user_id: str):
    """
    Yields False while another request is already driving this checkout.

    Callers load, act on and save (or discard) the pending snapshot inside
    the lock.
    """
    api_cfg = getattr(settings, "MARKETPLACE_API", {}) or {}
    # Covers a gateway call plus the order placement that follows it.
    timeout = int(float(api_cfg.get("TIMEOUT_SECONDS", 25)) * 2)

    key = f"{_key(transaction_id, str(user_id))}:lock"
    acquired = cache.add(key, "1", timeout=timeout)
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)
