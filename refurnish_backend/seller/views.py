# seller/views.py

"""
SELLER API VIEWS

- GET    /api/seller/dashboard/            mirror + aggregates + toasts
- POST   /api/seller/products/             create (multipart, images first)
- PUT    /api/seller/products/<id>/        edit (skipped when nothing changed)
- DELETE /api/seller/products/<id>/
- POST   /api/seller/notifications/        signed push webhook from upstream
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from drf_spectacular.utils import extend_schema

from marketplace.api import error_response, not_authenticated_response, upstream_error_response
from marketplace.auth import AuthSession, require_session, session_from_request
from marketplace.client import MarketplaceClient
from marketplace.exceptions import NotAuthenticatedError, UpstreamError
from seller.serializers import (
    DashboardQuerySerializer,
    DashboardSerializer,
    NotificationEventSerializer,
    ProductFormInputSerializer,
    SellerProductSerializer,
)
from seller.services.dashboard import SellerDashboard
from seller.services.exceptions import (
    ImageUploadError,
    ImageValidationError,
    ProductNotFoundError,
    ProductValidationError,
)
from seller.services.images import ImageUploader
from seller.services.notifications import NotificationChannel
from seller.services.remote import HttpProductsRemote
from seller.services.webhook import SIGNATURE_HEADER, verify_notification_signature

logger = logging.getLogger(__name__)


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


# =====================================================
# HELPERS
# =====================================================

def build_dashboard(session: AuthSession) -> SellerDashboard:
    client = MarketplaceClient(token=session.token)
    return SellerDashboard(
        session=session,
        products=HttpProductsRemote(client=client),
        uploader=ImageUploader(client=client),
        channel=NotificationChannel(),
    )


def _product_write_error(exc):
    if isinstance(exc, ProductValidationError):
        return error_response(
            code="VALIDATION_ERROR",
            message=exc.message,
            http_status=status.HTTP_400_BAD_REQUEST,
            fields=exc.fields or None,
        )
    if isinstance(exc, ImageValidationError):
        return error_response(code="INVALID_IMAGE", message=str(exc), http_status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ImageUploadError):
        return error_response(code="IMAGE_UPLOAD_FAILED", message=str(exc), http_status=status.HTTP_502_BAD_GATEWAY)
    if isinstance(exc, ProductNotFoundError):
        return error_response(code="NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND)
    return upstream_error_response(exc)


_WRITE_ERRORS = (
    ProductValidationError,
    ImageValidationError,
    ImageUploadError,
    ProductNotFoundError,
    UpstreamError,
)


# =====================================================
# SELLER API VIEWS
# =====================================================

class SellerDashboardView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = DashboardSerializer

    @extend_schema(
        parameters=[DashboardQuerySerializer],
        responses={200: DashboardSerializer},
        description="Seller's products (filtered, sorted, 7 per page), aggregates and pending notifications",
    )
    def get(self, request):
        query = DashboardQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        dashboard = build_dashboard(session)
        try:
            dashboard.start()
        except UpstreamError as exc:
            return upstream_error_response(exc)
        finally:
            dashboard.stop()

        listing = dashboard.page(
            filter_by=query.validated_data["filter"],
            sort_by=query.validated_data["sort"],
            page=query.validated_data["page"],
        )
        data = DashboardSerializer(
            {
                "shop_name": dashboard.shop_name,
                "stats": dashboard.summary(),
                "listing": listing,
                "toasts": dashboard.active_toasts(),
                "last_refresh": dashboard.last_refresh,
            }
        ).data
        return Response(data, status=status.HTTP_200_OK)


class SellerProductListView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    serializer_class = SellerProductSerializer

    @extend_schema(
        request=ProductFormInputSerializer,
        responses={201: SellerProductSerializer},
        description="Create a product (at least 2 images; submitted for approval)",
    )
    def post(self, request):
        serializer = ProductFormInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        dashboard = build_dashboard(session)
        try:
            created = dashboard.create_product(serializer.to_form())
        except _WRITE_ERRORS as exc:
            return _product_write_error(exc)

        body = SellerProductSerializer(created).data if created else None
        return Response({"product": body}, status=status.HTTP_201_CREATED)


class SellerProductDetailView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    serializer_class = SellerProductSerializer

    @extend_schema(
        request=ProductFormInputSerializer,
        responses={200: SellerProductSerializer},
        description="Edit a product; any change sends it back for approval",
    )
    def put(self, request, product_id):
        serializer = ProductFormInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        dashboard = build_dashboard(session)
        try:
            dashboard.refresh()
            updated = dashboard.update_product(str(product_id), serializer.to_form())
        except _WRITE_ERRORS as exc:
            return _product_write_error(exc)

        if updated is None:
            current = dashboard.get_product(str(product_id))
            return Response(
                {"updated": False, "product": SellerProductSerializer(current).data},
                status=status.HTTP_200_OK,
            )
        return Response(
            {"updated": True, "product": SellerProductSerializer(updated).data},
            status=status.HTTP_200_OK,
        )

    @extend_schema(responses={204: None}, description="Delete one of the seller's products")
    def delete(self, request, product_id):
        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        dashboard = build_dashboard(session)
        try:
            dashboard.refresh()
            dashboard.delete_product(str(product_id))
        except _WRITE_ERRORS as exc:
            return _product_write_error(exc)

        return Response(status=status.HTTP_204_NO_CONTENT)


class NotificationsWebhookView(APIView):
    """Upstream push events (signed with NOTIFICATIONS_WEBHOOK_SECRET)."""

    authentication_classes = []
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]
    throttle_classes = [WebhookThrottle]

    @extend_schema(request=NotificationEventSerializer, responses={200: dict})
    def post(self, request):
        raw_body = getattr(request, "body", b"") or b""
        signature = request.headers.get(SIGNATURE_HEADER)

        if not verify_notification_signature(raw_body=raw_body, signature=signature):
            logger.warning("Invalid notification signature")
            return error_response(
                code="INVALID_SIGNATURE",
                message="Invalid signature",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        serializer = NotificationEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = serializer.validated_data

        NotificationChannel().publish(event["event"], user_id=event["userId"], data=event["data"])
        return Response({"ok": True}, status=status.HTTP_200_OK)
