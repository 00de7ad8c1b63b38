# backend/urls.py
"""
PROJECT URLS

All API routes live under /api/

Refurnish BFF modules:
- /api/cart/      cart lines + selection totals
- /api/checkout/  quote, card validation, checkout, e-wallet confirmation
- /api/orders/    order tracking
- /api/seller/    seller dashboard, product writes, push webhook

Operational maturity:
- /api/health/ (AllowAny) reports this service and the upstream marketplace
  API (checked with a hard timeout).
"""

from __future__ import annotations

from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from marketplace.client import MarketplaceClient


# ------------------ API ROOT (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {
            "type": "object",
            "properties": {
                "message": {"type": "string"},
                "docs": {"type": "object"},
                "modules": {"type": "object"},
            },
        }
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(
        {
            "message": "Refurnish BFF API is running",
            "docs": {
                "swagger": "/api/docs/",
                "schema": "/api/schema/",
            },
            "modules": {
                "cart": "/api/cart/",
                "checkout": "/api/checkout/",
                "orders": "/api/orders/",
                "seller": "/api/seller/dashboard/",
            },
        }
    )


# ------------------ HEALTH CHECK (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {
            "type": "object",
            "properties": {
                "status": {"type": "string"},
                "marketplace": {"type": "string"},
            },
        },
        503: {
            "type": "object",
            "properties": {
                "status": {"type": "string"},
                "marketplace": {"type": "string"},
            },
        },
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    Minimal operational endpoint:
    - Confirms app is responding
    - Confirms the upstream marketplace API answers GET / within the health timeout
    """
    if MarketplaceClient().is_healthy():
        return Response({"status": "ok", "marketplace": "ok"})
    return Response({"status": "degraded", "marketplace": "down"}, status=503)


# ------------------ API ROUTES (ALL UNDER /api/) ------------------
api_urlpatterns = [
    # Health check / root
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    # OpenAPI / Swagger
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    # App modules
    path("cart/", include("cart.urls")),
    path("checkout/", include("checkout.urls")),
    path("orders/", include("orders.urls")),
    path("seller/", include("seller.urls")),
]

urlpatterns = [
    # Root convenience: visiting / takes you to Swagger docs
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
