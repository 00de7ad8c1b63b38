# cart/views.py

"""
CART API VIEWS

Purpose:
- Read the user's upstream cart with the client's local selection applied
- Increment / decrement / remove a line (one mutation per line at a time)

Hard rules:
- The upstream cart is the system of record; nothing is persisted here.
- A mutation on a line that is already in flight is dropped (HTTP 409).
- The cart is read only after the line lock is held.
- Remote failure leaves the cart unchanged (no retry).
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import extend_schema

from cart.serializers import (
    CartMutationInputSerializer,
    CartQuerySerializer,
    CartSerializer,
    serialize_cart,
)
from cart.services.cart_store import CartStore, OperationStatus
from cart.services.locks import line_lock
from cart.services.remote import HttpCartRemote
from marketplace.api import error_response, not_authenticated_response, upstream_error_response
from marketplace.auth import AuthSession, require_session, session_from_request
from marketplace.client import MarketplaceClient
from marketplace.exceptions import NotAuthenticatedError, UpstreamError


# =====================================================
# HELPERS
# =====================================================

def build_cart_store(session: AuthSession) -> CartStore:
    return CartStore(remote=HttpCartRemote(client=MarketplaceClient(token=session.token)))


def parse_selected_param(raw) -> list[str]:
    if isinstance(raw, (list, tuple)):
        return [str(i).strip() for i in raw if str(i).strip()]
    return [part.strip() for part in str(raw or "").split(",") if part.strip()]


class _CartLineMutationView(APIView):
    """Shared flow: lock line -> load -> apply selection -> mutate -> serialize."""

    permission_classes = [IsAuthenticated]
    serializer_class = CartSerializer
    operation = ""

    def _mutate(self, store: CartStore, line_id: str) -> bool:
        return getattr(store, self.operation)(line_id)

    def _run(self, request, line_id: str):
        serializer = CartMutationInputSerializer(data=request.data if isinstance(request.data, dict) else {})
        serializer.is_valid(raise_exception=True)

        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        with line_lock(user_id=session.user_id, line_id=line_id) as acquired:
            if not acquired:
                return error_response(
                    code="IN_FLIGHT",
                    message="This item is still being updated.",
                    http_status=status.HTTP_409_CONFLICT,
                )

            # Quantities are read while the line is locked.
            store = build_cart_store(session)
            try:
                store.load()
            except UpstreamError as exc:
                return upstream_error_response(exc)

            selected = serializer.validated_data.get("selected") or parse_selected_param(
                request.query_params.get("selected")
            )
            store.select_only(selected)

            if store.get(line_id) is None:
                return error_response(
                    code="LINE_NOT_FOUND",
                    message="That item is no longer in your cart.",
                    http_status=status.HTTP_404_NOT_FOUND,
                )
            self._mutate(store, line_id)

        if store.status(line_id) is OperationStatus.FAILED:
            return error_response(
                code="CART_UPDATE_FAILED",
                message="Could not update your cart. Please try again.",
                http_status=status.HTTP_502_BAD_GATEWAY,
            )

        return Response(serialize_cart(store), status=status.HTTP_200_OK)


# =====================================================
# CART API VIEWS
# =====================================================

class CartView(APIView):
    """
    Current upstream cart. `?selected=a,b` applies the client's selection so
    totals cover exactly those lines.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = CartSerializer

    @extend_schema(
        parameters=[CartQuerySerializer],
        responses={200: CartSerializer},
        description="Get the user's cart with totals for the selected lines",
    )
    def get(self, request):
        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        store = build_cart_store(session)
        try:
            store.load()
        except UpstreamError as exc:
            return upstream_error_response(exc)

        store.select_only(parse_selected_param(request.query_params.get("selected")))
        return Response(serialize_cart(store), status=status.HTTP_200_OK)


class CartLineIncrementView(_CartLineMutationView):
    operation = "increment"

    @extend_schema(
        request=CartMutationInputSerializer,
        responses={200: CartSerializer},
        description="Increase a line's quantity by one (capped at 99)",
    )
    def post(self, request, line_id):
        return self._run(request, str(line_id))


class CartLineDecrementView(_CartLineMutationView):
    operation = "decrement"

    @extend_schema(
        request=CartMutationInputSerializer,
        responses={200: CartSerializer},
        description="Decrease a line's quantity by one; at zero the line is removed",
    )
    def post(self, request, line_id):
        return self._run(request, str(line_id))


class CartLineView(_CartLineMutationView):
    operation = "remove_from_cart"

    @extend_schema(
        parameters=[CartQuerySerializer],
        responses={200: CartSerializer},
        description="Remove a line from the cart",
    )
    def delete(self, request, line_id):
        return self._run(request, str(line_id))
