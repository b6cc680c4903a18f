"""Payment URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.payments.views import PaymentNotificationView, PaymentStatusView

urlpatterns = [
    path(
        "payments/notification/",
        PaymentNotificationView.as_view(),
        name="payment-notification",
    ),
    path("payments/status/", PaymentStatusView.as_view(), name="payment-status"),
]
