# checkout/views.py

"""
CHECKOUT API VIEWS

Purpose:
- Quote totals for a selection of cart lines
- Validate card details locally (never forwarded upstream)
- Checkout: COD / card place the order immediately (201); e-wallet opens a
  pending payment (202) that is continued via the ewallet endpoints

Hard rules:
- Local validation failures never reach the upstream API (400).
- Order placement failure leaves the cart untouched (502).
- A pending e-wallet checkout is bound to the user that started it.
- Overlapping requests for the same checkout answer 409 instead of placing
  a second order or charging twice.
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle
from rest_framework.views import APIView

from drf_spectacular.utils import OpenApiExample, extend_schema

from cart.services.cart_store import CartStore
from cart.services.remote import HttpCartRemote
from checkout.serializers import (
    CheckoutInputSerializer,
    CheckoutResultSerializer,
    EwalletLoginInputSerializer,
    PaymentModalSerializer,
    QuoteInputSerializer,
    QuoteSerializer,
    ValidateCardInputSerializer,
    ValidateCardSerializer,
    serialize_modal,
    serialize_result,
)
from checkout.services.checkout_lifecycle import CheckoutState
from checkout.services.checkout_orchestrator import CheckoutOrchestrator
from checkout.services.exceptions import CheckoutValidationError, PaymentModalError
from checkout.services.locks import submission_lock
from checkout.services.payment_gateway import get_payment_gateway
from checkout.services.payment_selector import PaymentSelector
from checkout.services.pending import discard_pending, load_pending, processing_lock, save_pending
from marketplace.api import error_response, not_authenticated_response, upstream_error_response
from marketplace.auth import AuthSession, require_session, session_from_request
from marketplace.client import MarketplaceClient
from marketplace.exceptions import NotAuthenticatedError, UpstreamError
from orders.services.remote import HttpOrdersRemote

logger = logging.getLogger(__name__)

_SELECTION_KEYS = ("payment_mode", "ewallet_option", "card_type", "delivery_mode")


class CheckoutWriteThrottle(UserRateThrottle):
    scope = "checkout_write"


# =====================================================
# HELPERS
# =====================================================

def build_orchestrator(session: AuthSession) -> CheckoutOrchestrator:
    client = MarketplaceClient(token=session.token)
    return CheckoutOrchestrator(
        session=session,
        cart=CartStore(remote=HttpCartRemote(client=client)),
        selector=PaymentSelector(),
        orders=HttpOrdersRemote(client=client),
        gateway=get_payment_gateway(client=client),
    )


def _validation_response(exc: CheckoutValidationError):
    return error_response(
        code="VALIDATION_ERROR",
        message=exc.message,
        http_status=status.HTTP_400_BAD_REQUEST,
        fields=exc.fields or None,
    )


def _order_failed_response(result):
    return error_response(
        code="ORDER_FAILED",
        message=result.message,
        http_status=status.HTTP_502_BAD_GATEWAY,
    )


def _checkout_not_found():
    return error_response(
        code="CHECKOUT_NOT_FOUND",
        message="This payment session has expired. Please check out again.",
        http_status=status.HTTP_404_NOT_FOUND,
    )


def _payment_processing():
    return error_response(
        code="PAYMENT_PROCESSING",
        message="Your payment is already being processed.",
        http_status=status.HTTP_409_CONFLICT,
    )


def _invalid_step(exc):
    return error_response(code="INVALID_STEP", message=str(exc), http_status=status.HTTP_409_CONFLICT)


class _PendingEwalletView(APIView):
    """
    Continues the pending e-wallet checkout of the current user.

    Subclasses implement `handle(orchestrator, session, transaction_id, **params)`.
    It runs inside the checkout's processing lock, after the snapshot has
    been loaded and restored, and owns saving or discarding the snapshot.
    """

    permission_classes = [IsAuthenticated]
    throttle_classes = [CheckoutWriteThrottle]

    def _continue(self, request, transaction_id: str, **params):
        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        with processing_lock(transaction_id, user_id=session.user_id) as acquired:
            if not acquired:
                return _payment_processing()

            snapshot = load_pending(transaction_id, user_id=session.user_id)
            if snapshot is None:
                return _checkout_not_found()

            orchestrator = build_orchestrator(session)
            try:
                error = self._restore(orchestrator, snapshot, session=session, transaction_id=transaction_id)
                if error is not None:
                    return error
                return self.handle(orchestrator, session, transaction_id, **params)
            finally:
                orchestrator.close()

    def _restore(self, orchestrator: CheckoutOrchestrator, snapshot: dict, *, session, transaction_id):
        """Returns an error Response, or None once the checkout awaits confirmation."""
        try:
            orchestrator.cart.load()
        except UpstreamError as exc:
            return upstream_error_response(exc)

        orchestrator.restore(snapshot)
        if orchestrator.state is not CheckoutState.AWAITING_EWALLET_CONFIRMATION:
            discard_pending(transaction_id, user_id=session.user_id)
            return _checkout_not_found()
        return None

    def handle(self, orchestrator: CheckoutOrchestrator, session: AuthSession, transaction_id: str, **params):
        raise NotImplementedError


# =====================================================
# CHECKOUT API VIEWS
# =====================================================

class CheckoutQuoteView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = QuoteSerializer

    @extend_schema(
        request=QuoteInputSerializer,
        responses={200: QuoteSerializer},
        description="Subtotal, flat shipping fee and total for the selected cart lines",
    )
    def post(self, request):
        serializer = QuoteInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        cart = CartStore(remote=HttpCartRemote(client=MarketplaceClient(token=session.token)))
        try:
            cart.load()
        except UpstreamError as exc:
            return upstream_error_response(exc)

        cart.select_only(serializer.validated_data["selected_items"])
        data = QuoteSerializer({"lines": cart.selected_lines, "totals": cart.totals()}).data
        return Response(data, status=status.HTTP_200_OK)


class ValidateCardView(APIView):
    """Field-keyed card validation, as the checkout form would surface it."""

    permission_classes = [IsAuthenticated]
    serializer_class = ValidateCardSerializer

    @extend_schema(
        request=ValidateCardInputSerializer,
        responses={200: ValidateCardSerializer},
        description="Validate card details locally (only applies to DebitCredit)",
    )
    def post(self, request):
        serializer = ValidateCardInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        selector = PaymentSelector()
        selector.update(**{k: data.get(k) for k in _SELECTION_KEYS})
        selector.set_card(**(data.get("card") or {}))
        valid = selector.mark_submitted()
        errors = selector.visible_errors
        selector.close()

        return Response(ValidateCardSerializer({"valid": valid, "errors": errors}).data)


class CheckoutView(APIView):
    """
    Place an order for the selected cart lines.

    - CashOnDelivery / DebitCredit -> 201 with the placed order
    - Ewallet -> 202 with a pending payment (continue via /ewallet/<txn>/...)
    """

    permission_classes = [IsAuthenticated]
    throttle_classes = [CheckoutWriteThrottle]

    @extend_schema(
        request=CheckoutInputSerializer,
        responses={201: CheckoutResultSerializer, 202: CheckoutResultSerializer},
        description="Checkout the selected cart lines",
        examples=[
            OpenApiExample(
                "Cash on delivery",
                value={
                    "selected_items": ["665f1c0e9b1a4d0012345678"],
                    "shipping_address": "12 Mabini St, Quezon City",
                    "payment_mode": "CashOnDelivery",
                    "delivery_mode": "LBC Express",
                },
                request_only=True,
            ),
            OpenApiExample(
                "Card",
                value={
                    "selected_items": ["665f1c0e9b1a4d0012345678"],
                    "shipping_address": "12 Mabini St, Quezon City",
                    "payment_mode": "DebitCredit",
                    "card_type": "credit",
                    "card": {
                        "holder_name": "Juan Dela Cruz",
                        "number": "4539 5787 6362 1486",
                        "expiry": "12/30",
                        "cvc": "123",
                    },
                },
                request_only=True,
            ),
        ],
    )
    def post(self, request):
        serializer = CheckoutInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            session = require_session(session_from_request(request))
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        with submission_lock(user_id=session.user_id, item_ids=data["selected_items"]) as acquired:
            if not acquired:
                return error_response(
                    code="CHECKOUT_IN_PROGRESS",
                    message="Your order is already being placed.",
                    http_status=status.HTTP_409_CONFLICT,
                )
            orchestrator = build_orchestrator(session)
            try:
                return self._submit(orchestrator, data)
            finally:
                orchestrator.close()

    def _submit(self, orchestrator: CheckoutOrchestrator, data: dict):
        try:
            orchestrator.cart.load()
        except UpstreamError as exc:
            return upstream_error_response(exc)

        orchestrator.cart.select_only(data["selected_items"])
        orchestrator.selector.update(**{k: data.get(k) for k in _SELECTION_KEYS})
        if data.get("card"):
            orchestrator.selector.set_card(**data["card"])

        try:
            result = orchestrator.submit(
                shipping_address=data["shipping_address"],
                notes=data.get("notes") or "",
            )
        except CheckoutValidationError as exc:
            return _validation_response(exc)
        except NotAuthenticatedError as exc:
            return not_authenticated_response(exc)

        if result.state is CheckoutState.AWAITING_EWALLET_CONFIRMATION:
            save_pending(orchestrator.snapshot())
            return Response(
                serialize_result(result, modal=orchestrator.modal),
                status=status.HTTP_202_ACCEPTED,
            )

        if result.state is CheckoutState.FAILED:
            return _order_failed_response(result)

        return Response(serialize_result(result), status=status.HTTP_201_CREATED)


class EwalletLoginView(_PendingEwalletView):
    @extend_schema(
        request=EwalletLoginInputSerializer,
        responses={200: PaymentModalSerializer},
        description="Log in to the e-wallet with a 10-digit mobile number",
    )
    def post(self, request, transaction_id):
        serializer = EwalletLoginInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._continue(
            request,
            transaction_id,
            mobile_number=serializer.validated_data["mobile_number"],
        )

    def handle(self, orchestrator, session, transaction_id, *, mobile_number=""):
        try:
            ok = orchestrator.ewallet_login(mobile_number)
        except PaymentModalError as exc:
            return _invalid_step(exc)

        save_pending(orchestrator.snapshot())
        if not ok:
            return error_response(
                code="VALIDATION_ERROR",
                message=orchestrator.modal.error,
                http_status=status.HTTP_400_BAD_REQUEST,
                fields={"mobile_number": orchestrator.modal.error},
            )
        return Response(serialize_modal(orchestrator.modal), status=status.HTTP_200_OK)


class EwalletBackView(_PendingEwalletView):
    @extend_schema(
        request=None,
        responses={200: PaymentModalSerializer},
        description="Go back from the confirm step to the mobile number login",
    )
    def post(self, request, transaction_id):
        return self._continue(request, transaction_id)

    def handle(self, orchestrator, session, transaction_id):
        try:
            orchestrator.ewallet_back()
        except PaymentModalError as exc:
            return _invalid_step(exc)

        save_pending(orchestrator.snapshot())
        return Response(serialize_modal(orchestrator.modal), status=status.HTTP_200_OK)


class EwalletProceedView(_PendingEwalletView):
    @extend_schema(
        request=None,
        responses={201: CheckoutResultSerializer},
        description="Pay with the e-wallet; on success the order is placed",
    )
    def post(self, request, transaction_id):
        return self._continue(request, transaction_id)

    def handle(self, orchestrator, session, transaction_id):
        try:
            result = orchestrator.ewallet_proceed()
        except PaymentModalError as exc:
            return _invalid_step(exc)

        if result.state is CheckoutState.SUCCEEDED:
            discard_pending(transaction_id, user_id=session.user_id)
            return Response(serialize_result(result), status=status.HTTP_201_CREATED)

        if result.state is CheckoutState.FAILED:
            discard_pending(transaction_id, user_id=session.user_id)
            return _order_failed_response(result)

        # Declined: back on the confirm step, the user may try again.
        save_pending(orchestrator.snapshot())
        return error_response(
            code="PAYMENT_DECLINED",
            message=result.message,
            http_status=status.HTTP_402_PAYMENT_REQUIRED,
        )


class EwalletCancelView(_PendingEwalletView):
    @extend_schema(
        responses={200: CheckoutResultSerializer},
        description="Close the e-wallet payment window without placing an order",
    )
    def delete(self, request, transaction_id):
        return self._continue(request, transaction_id)

    def handle(self, orchestrator, session, transaction_id):
        try:
            result = orchestrator.cancel_ewallet()
        except PaymentModalError as exc:
            return _invalid_step(exc)

        discard_pending(transaction_id, user_id=session.user_id)
        return Response(serialize_result(result), status=status.HTTP_200_OK)
