# checkout/services/locks.py

"""
CHECKOUT SUBMISSION LOCK (across HTTP requests)

Every checkout request builds a fresh orchestrator, so its busy-state guard
only covers one request. This lock covers overlapping requests from the same
user for the same selection of cart lines.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable

from django.conf import settings
from django.core.cache import cache


def _lock_ttl() -> int:
    api_cfg = getattr(settings, "MARKETPLACE_API", {}) or {}
    # Cart read plus order placement.
    return int(float(api_cfg.get("TIMEOUT_SECONDS", 25)) * 2)


def _lock_key(user_id: str, item_ids: Iterable[str]) -> str:
    return f"checkout:submit-lock:{user_id}:{','.join(sorted(str(i) for i in item_ids))}"


@contextmanager
def submission_lock(*, user_id: str, item_ids: Iterable[str]):
    """Yields True when acquired, False while the same checkout is in progress."""
    key = _lock_key(str(user_id), item_ids)
    acquired = cache.add(key, "1", timeout=_lock_ttl())
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)
