from django.urls import path

from cart.views import CartLineDecrementView, CartLineIncrementView, CartLineView, CartView

urlpatterns = [
    path("", CartView.as_view(), name="cart"),
    path("items/<str:line_id>/", CartLineView.as_view(), name="cart-line"),
    path("items/<str:line_id>/increment/", CartLineIncrementView.as_view(), name="cart-line-increment"),
    path("items/<str:line_id>/decrement/", CartLineDecrementView.as_view(), name="cart-line-decrement"),
]
