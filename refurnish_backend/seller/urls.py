from django.urls import path

from seller.views import (
    NotificationsWebhookView,
    SellerDashboardView,
    SellerProductDetailView,
    SellerProductListView,
)

urlpatterns = [
    path("dashboard/", SellerDashboardView.as_view(), name="seller-dashboard"),
    path("products/", SellerProductListView.as_view(), name="seller-products"),
    path("products/<str:product_id>/", SellerProductDetailView.as_view(), name="seller-product-detail"),
    path("notifications/", NotificationsWebhookView.as_view(), name="seller-notifications"),
]
