"""Order URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.orders.views import AdminMetricsView, AdminOrderView, OrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = [
    path("admin/orders/", AdminOrderView.as_view(), name="admin-orders"),
    path("admin/metrics/", AdminMetricsView.as_view(), name="admin-metrics"),
    *router.urls,
]
