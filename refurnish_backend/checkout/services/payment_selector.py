# checkout/services/payment_selector.py

"""
PAYMENT / DELIVERY SELECTOR

Controlled form state for {payment_mode, ewallet_option, card_type,
delivery_mode} plus local card details.

Contract:
- value_changed fires on every change of the selection, so subscribers always
  hold a live snapshot (not only on submit).
- validity_changed fires separately, only when card validity flips, so the
  orchestrator can gate submission without re-deriving validity.
- Field errors are computed continuously but only surfaced (visible_errors)
  after the first submission attempt.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Callable

from django.utils import timezone

from checkout.services.card_validation import validate_card
from checkout.services.payment_selection import (
    CardDetails,
    CardType,
    DeliveryMode,
    EwalletOption,
    PaymentMode,
    PaymentSelection,
)
from checkout.signals import validity_changed, value_changed

_SELECTION_FIELDS = {
    "payment_mode": PaymentMode,
    "ewallet_option": EwalletOption,
    "card_type": CardType,
    "delivery_mode": DeliveryMode,
}

_CARD_FIELDS = ("holder_name", "number", "expiry", "cvc")


class PaymentSelector:
    def __init__(
        self,
        *,
        selection: PaymentSelection | None = None,
        today: Callable[[], date] | None = None,
    ):
        self._selection = selection or PaymentSelection()
        self._card = CardDetails()
        self._today = today or timezone.localdate
        self._submitted = False
        self._receivers: list[tuple] = []
        self._errors = self._validate()

    # -----------------------------
    # Read side
    # -----------------------------

    @property
    def selection(self) -> PaymentSelection:
        return self._selection

    @property
    def card(self) -> CardDetails:
        return self._card

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    @property
    def is_valid(self) -> bool:
        return not self._errors

    @property
    def submitted(self) -> bool:
        return self._submitted

    @property
    def visible_errors(self) -> dict[str, str]:
        return dict(self._errors) if self._submitted else {}

    # -----------------------------
    # Subscriptions
    # -----------------------------

    def subscribe(
        self,
        *,
        on_value: Callable[[PaymentSelection], None] | None = None,
        on_validity: Callable[[bool, dict], None] | None = None,
    ) -> Callable[[], None]:
        """Connect callbacks for this selector only. Returns an unsubscribe callable."""
        connected = []

        if on_value is not None:
            def _on_value(sender, selection, **kwargs):
                on_value(selection)

            value_changed.connect(_on_value, sender=self, weak=False)
            connected.append((value_changed, _on_value))

        if on_validity is not None:
            def _on_validity(sender, is_valid, errors, **kwargs):
                on_validity(is_valid, errors)

            validity_changed.connect(_on_validity, sender=self, weak=False)
            connected.append((validity_changed, _on_validity))

        self._receivers.extend(connected)

        def unsubscribe():
            for signal, receiver in connected:
                signal.disconnect(receiver, sender=self)
                if (signal, receiver) in self._receivers:
                    self._receivers.remove((signal, receiver))

        return unsubscribe

    # -----------------------------
    # Mutations
    # -----------------------------

    def update(self, **fields) -> PaymentSelection:
        """Set any of payment_mode / ewallet_option / card_type / delivery_mode (enum or raw value)."""
        changes = {}
        for name, value in fields.items():
            if name not in _SELECTION_FIELDS:
                raise TypeError(f"Unknown selection field: {name}")
            if value is None:
                continue
            changes[name] = _SELECTION_FIELDS[name](value)

        new_selection = replace(self._selection, **changes)
        if new_selection != self._selection:
            self._selection = new_selection
            value_changed.send(sender=self, selection=new_selection)
            self._revalidate()
        return self._selection

    def set_card(self, **fields) -> None:
        unknown = set(fields) - set(_CARD_FIELDS)
        if unknown:
            raise TypeError(f"Unknown card field(s): {', '.join(sorted(unknown))}")

        clean = {k: str(v if v is not None else "") for k, v in fields.items()}
        self._card = replace(self._card, **clean)
        self._revalidate()

    def mark_submitted(self) -> bool:
        """Record a submission attempt (errors become visible). Returns current validity."""
        self._submitted = True
        self._revalidate()
        return self.is_valid

    def close(self) -> None:
        """Discard card details and drop every subscription."""
        self._card = CardDetails()
        self._submitted = False
        for signal, receiver in list(self._receivers):
            signal.disconnect(receiver, sender=self)
        self._receivers.clear()
        self._errors = self._validate()

    # -----------------------------
    # Internals
    # -----------------------------

    def _validate(self) -> dict[str, str]:
        return validate_card(
            self._card,
            payment_mode=self._selection.payment_mode,
            today=self._today(),
        )

    def _revalidate(self) -> None:
        was_valid = self.is_valid
        self._errors = self._validate()
        if was_valid != self.is_valid:
            validity_changed.send(sender=self, is_valid=self.is_valid, errors=dict(self._errors))
