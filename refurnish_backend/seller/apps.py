# seller/apps.py

"""
SELLER APP CONFIG

Seller dashboard: product mirror, aggregates, listing CRUD with image upload,
and push notifications for product status changes.
"""

from django.apps import AppConfig


class SellerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "seller"
    verbose_name = "Seller Dashboard"
