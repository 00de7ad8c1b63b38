# checkout/signals.py

"""
CHECKOUT SIGNALS

Explicit observer streams for the payment/delivery selector. The selector is
the signal sender, so subscribers receive events for one selector only.

value_changed(sender=selector, selection=PaymentSelection)
validity_changed(sender=selector, is_valid=bool, errors=dict)
"""

from django.dispatch import Signal

value_changed = Signal()
validity_changed = Signal()
