# orders/views.py

"""
ORDER TRACKING API VIEWS

- GET /api/orders/            the user's orders (health-checked first)
- GET /api/orders/<order_id>/ one order

Upstream unavailable is its own answer (503), distinct from a failed fetch
(502) and from an empty history (200, state "empty").
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import extend_schema

from marketplace.api import error_response, not_authenticated_response, upstream_error_response
from marketplace.auth import AuthSession, require_session, session_from_request
from marketplace.client import MarketplaceClient
from marketplace.exceptions import NotAuthenticatedError, UpstreamError
from orders.serializers import OrderListSerializer, PlacedOrderSerializer
from orders.services.order_tracker import OrderTracker, TrackerState
from orders.services.remote import HttpOrdersRemote


def _remote_for(session: AuthSession) -> HttpOrdersRemote:
    return HttpOrdersRemote(client=MarketplaceClient(token=session.token))


def build_tracker(session: AuthSession | None = None) -> OrderTracker:
    return OrderTracker(
        remote_factory=_remote_for,
        health_check=MarketplaceClient().is_healthy,
        session=session,
    )


class OrderListView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderListSerializer

    @extend_schema(
        responses={200: OrderListSerializer},
        description="Orders placed by the signed-in user (newest first, as upstream returns them)",
    )
    def get(self, request):
        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        tracker = build_tracker()
        state = tracker.set_session(session)

        if state is TrackerState.UNAVAILABLE:
            return error_response(
                code="SERVICE_UNAVAILABLE",
                message=tracker.error,
                http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        if state is TrackerState.ERROR:
            return error_response(
                code="ORDERS_FETCH_FAILED",
                message=tracker.error,
                http_status=status.HTTP_502_BAD_GATEWAY,
            )

        data = OrderListSerializer({"state": state.value, "orders": tracker.orders}).data
        return Response(data, status=status.HTTP_200_OK)


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PlacedOrderSerializer

    @extend_schema(
        responses={200: PlacedOrderSerializer},
        description="A single order by its order id",
    )
    def get(self, request, order_id):
        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        try:
            order = build_tracker(session).get_order(str(order_id))
        except UpstreamError as exc:
            return upstream_error_response(exc)

        return Response(PlacedOrderSerializer(order).data, status=status.HTTP_200_OK)
