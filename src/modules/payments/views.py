"""Payment API views.

Two public endpoints feed ``ReconciliationService``:

- ``POST /api/v1/payments/notification/``: gateway webhook (push).  It always
  answers 200 for well-formed notifications, including unknown orders, so
  the gateway does not keep retrying.
- ``POST /api/v1/payments/status/``: client poll (pull), used by the payment
  result pages.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from modules.orders.dtos import PaymentNotificationDTO, PaymentStatusQueryDTO
from modules.orders.exceptions import OrderNotFound, OrderPersistenceError
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import ReconciliationService
from modules.payments.exceptions import (
    InvalidNotificationSignature,
    PaymentGatewayError,
    PaymentGatewayNotConfigured,
)
from modules.payments.gateway import MidtransGateway
from modules.payments.serializers import (
    PaymentNotificationSerializer,
    PaymentStatusQuerySerializer,
)


def _reconciliation_service() -> ReconciliationService:
    return ReconciliationService(
        order_repository=OrderDjangoRepository(),
        payment_gateway=MidtransGateway(),
    )


class PaymentNotificationView(APIView):
    """Gateway webhook receiver (no user authentication, no throttling)."""

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        serializer = PaymentNotificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        if not data["order_id"].strip():
            return Response(
                {"detail": "Missing order_id."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            result = _reconciliation_service().handle_notification(
                PaymentNotificationDTO(**data)
            )
        except InvalidNotificationSignature as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
        except OrderPersistenceError as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(result.to_response())


class PaymentStatusView(APIView):
    """Client-triggered payment status synchronisation."""

    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payment_status_poll"

    def post(self, request: Request) -> Response:
        serializer = PaymentStatusQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        references = serializer.references()
        if not references:
            return Response(
                {"detail": "orderId or orderNumber is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            result = _reconciliation_service().sync_payment_status(
                PaymentStatusQueryDTO(references=references)
            )
        except OrderNotFound:
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except PaymentGatewayNotConfigured as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        except PaymentGatewayError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)
        except OrderPersistenceError as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(result.to_response())
