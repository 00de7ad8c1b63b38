from django.urls import path

from checkout.views import (
    CheckoutQuoteView,
    CheckoutView,
    EwalletBackView,
    EwalletCancelView,
    EwalletLoginView,
    EwalletProceedView,
    ValidateCardView,
)

urlpatterns = [
    path("", CheckoutView.as_view(), name="checkout"),
    path("quote/", CheckoutQuoteView.as_view(), name="checkout-quote"),
    path("validate-card/", ValidateCardView.as_view(), name="checkout-validate-card"),
    path("ewallet/<str:transaction_id>/", EwalletCancelView.as_view(), name="checkout-ewallet-cancel"),
    path("ewallet/<str:transaction_id>/login/", EwalletLoginView.as_view(), name="checkout-ewallet-login"),
    path("ewallet/<str:transaction_id>/back/", EwalletBackView.as_view(), name="checkout-ewallet-back"),
    path("ewallet/<str:transaction_id>/proceed/", EwalletProceedView.as_view(), name="checkout-ewallet-proceed"),
]
