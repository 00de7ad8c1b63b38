# marketplace/apps.py

"""
MARKETPLACE APP CONFIG

Shared kernel for the BFF:
- Auth session derived from the upstream bearer token
- Upstream marketplace REST client (JSON over HTTP)
- Error taxonomy + API error normalization
- Money helpers
"""

from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "marketplace"
    verbose_name = "Marketplace (shared)"
