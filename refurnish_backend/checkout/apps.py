# checkout/apps.py

"""
CHECKOUT APP CONFIG

Payment/delivery selection, card validation, checkout orchestration and the
e-wallet payment mock modal.
"""

from django.apps import AppConfig


class CheckoutConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "checkout"
    verbose_name = "Checkout"
