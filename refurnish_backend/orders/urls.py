from django.urls import path

from orders.views import OrderDetailView, OrderListView

urlpatterns = [
    path("", OrderListView.as_view(), name="order-list"),
    path("<str:order_id>/", OrderDetailView.as_view(), name="order-detail"),
]
