# cart/services/locks.py

"""
PER-LINE MUTATION LOCK (across HTTP requests)

Mirrors CartStore's in-flight guard for concurrent requests: cache.add is
atomic, so a second mutation on the same (user, line) while the first is in
flight does not acquire the lock and is dropped by the caller.
"""

from __future__ import annotations

from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache


def _lock_ttl() -> int:
    cfg = getattr(settings, "CHECKOUT", {}) or {}
    return int(cfg.get("LINE_LOCK_TTL", 30))


def _lock_key(user_id: str, line_id: str) -> str:
    return f"cart:line-lock:{user_id}:{line_id}"


@contextmanager
def line_lock(*, user_id: str, line_id: str):
    """Yields True when the lock was acquired, False when the line is busy."""
    key = _lock_key(str(user_id), str(line_id))
    acquired = cache.add(key, "1", timeout=_lock_ttl())
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)
