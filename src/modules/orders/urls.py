"""Order URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.orders.views import (
    AdminOrderViewSet,
    CheckoutView,
    OrderViewSet,
    PaymentWebhookView,
)

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")
router.register("admin/orders", AdminOrderViewSet, basename="admin-order")

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("payment/webhook/", PaymentWebhookView.as_view(), name="payment-webhook"),
    *router.urls,
]
