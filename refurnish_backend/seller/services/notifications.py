# seller/services/notifications.py

"""
SELLER PUSH NOTIFICATIONS

Server-push events keyed by user id:
- product_status_update {productId, status, message}
- product_sold_update   {productId, productName}

Delivery is in-process via Django signals. Events are also kept in a short
per-user inbox (Django cache) so a dashboard built by a later request can
replay what it missed.
"""

from __future__ import annotations

import logging
from typing import Callable

from django.core.cache import cache

from seller.signals import product_sold_update, product_status_update

logger = logging.getLogger(__name__)

EVENT_STATUS_UPDATE = "product_status_update"
EVENT_SOLD_UPDATE = "product_sold_update"

INBOX_TTL_SECONDS = 10 * 60
INBOX_MAX_EVENTS = 50


def _inbox_key(user_id: str) -> str:
    return f"seller:inbox:{user_id}"


class NotificationChannel:
    def subscribe(
        self,
        user_id: str,
        *,
        on_status: Callable[[str, str, str], None] | None = None,
        on_sold: Callable[[str, str], None] | None = None,
    ) -> Callable[[], None]:
        """Listen for one user's events. Returns an unsubscribe callable."""
        user_id = str(user_id)
        connected = []

        if on_status is not None:
            def _status_receiver(sender, **kwargs):
                if str(kwargs.get("user_id")) == user_id:
                    on_status(kwargs["product_id"], kwargs["status"], kwargs.get("message") or "")

            product_status_update.connect(_status_receiver, weak=False)
            connected.append((product_status_update, _status_receiver))

        if on_sold is not None:
            def _sold_receiver(sender, **kwargs):
                if str(kwargs.get("user_id")) == user_id:
                    on_sold(kwargs["product_id"], kwargs.get("product_name") or "")

            product_sold_update.connect(_sold_receiver, weak=False)
            connected.append((product_sold_update, _sold_receiver))

        def unsubscribe():
            for signal, receiver in connected:
                signal.disconnect(receiver)
            connected.clear()

        return unsubscribe

    # -----------------------------
    # Publish
    # -----------------------------

    def publish(self, event: str, *, user_id: str, data: dict, remember: bool = True) -> None:
        user_id = str(user_id)
        product_id = str(data.get("productId") or "")

        if event == EVENT_STATUS_UPDATE:
            product_status_update.send(
                sender=self.__class__,
                user_id=user_id,
                product_id=product_id,
                status=str(data.get("status") or ""),
                message=str(data.get("message") or ""),
            )
        elif event == EVENT_SOLD_UPDATE:
            product_sold_update.send(
                sender=self.__class__,
                user_id=user_id,
                product_id=product_id,
                product_name=str(data.get("productName") or ""),
            )
        else:
            raise ValueError(f"Unknown notification event: {event}")

        logger.info("Seller notification published", extra={"event": event, "user_id": user_id})
        if remember:
            self._remember(user_id, event, data)

    def replay(self, user_id: str) -> int:
        """Re-send (and drain) the user's missed events to current subscribers."""
        key = _inbox_key(str(user_id))
        events = cache.get(key) or []
        cache.delete(key)
        for item in events:
            self.publish(item["event"], user_id=user_id, data=item["data"], remember=False)
        return len(events)

    def _remember(self, user_id: str, event: str, data: dict) -> None:
        key = _inbox_key(user_id)
        events = list(cache.get(key) or [])
        events.append({"event": event, "data": dict(data)})
        cache.set(key, events[-INBOX_MAX_EVENTS:], timeout=INBOX_TTL_SECONDS)
