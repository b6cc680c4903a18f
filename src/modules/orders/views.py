"""Order API views.

Exposes ``OrderService`` (checkout, read model and dashboard metrics) and
the admin side of ``ReconciliationService`` via HTTP using DRF.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from django.conf import settings
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny, BasePermission, IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import (
    AdminStatusUpdateDTO,
    CheckoutCustomerDTO,
    CheckoutDTO,
    CheckoutItemDTO,
)
from modules.orders.exceptions import (
    InvalidCheckout,
    InvalidStatusValue,
    OrderNotFound,
    OrderPersistenceError,
)
from modules.orders.filters import OrderFilter, parse_status_filter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AdminOrderSerializer,
    AdminStatusUpdateSerializer,
    CheckoutSerializer,
    OrderListSerializer,
    OrderSerializer,
)
from modules.orders.services import OrderService, ReconciliationService
from modules.orders.status import parse_status
from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateway import MidtransGateway


def _not_found() -> Response:
    return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)


class OrderViewSet(GenericViewSet):
    """ViewSet for checkout and the customer-facing order history.

    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer_name", "customer_email"]
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            payment_gateway=MidtransGateway(),
        )

    def get_permissions(self) -> list[BasePermission]:
        if self.action == "create":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttle scopes."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def _visible_to(self, order: Order) -> bool:
        user = self.request.user
        if user.is_staff:
            return True
        email = getattr(user, "email", "")
        return bool(email) and order.customer_email.lower() == email.lower()

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Persists the order and opens a hosted payment session.
        """
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        customer = data["customer"]
        dto = CheckoutDTO(
            customer=CheckoutCustomerDTO(
                full_name=customer["fullName"],
                email=customer["email"],
                address=customer["address"],
                city=customer["city"],
                zip_code=customer["zipCode"],
            ),
            items=[
                CheckoutItemDTO(
                    product_id=item["productId"],
                    product_name=item["productName"],
                    price=item["price"],
                    quantity=item["quantity"],
                )
                for item in data["items"]
            ],
        )

        try:
            result = self._service.place_order(dto, base_url=self._base_url(request))
        except InvalidCheckout as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except PaymentGatewayError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        return Response(result.to_response(), status=status.HTTP_201_CREATED)

    @staticmethod
    def _base_url(request: Request) -> str:
        return settings.APP_URL or request.build_absolute_uri("/")

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        user = self.request.user
        if user.is_staff:
            return self._service.list_orders()
        return self._service.list_orders(
            {"customer_email__iexact": getattr(user, "email", "") or None}
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Staff see every order; customers see the orders placed with their
        account e-mail.  Filtering is handled by ``OrderFilter``.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{id or order number}/"""
        if pk is None:
            return _not_found()
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()
        if not self._visible_to(order):
            return _not_found()
        return Response(OrderSerializer(order).data)


class AdminOrderView(APIView):
    """Staff order dashboard.

    GET   /api/v1/admin/orders/?status=all|pending|paid|shipped|delivered|canceled
    PATCH /api/v1/admin/orders/  ``{"orderId": "...", "status": "shipped"}``
    """

    permission_classes = [IsAdminUser]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        repository = OrderDjangoRepository()
        self._orders = OrderService(
            order_repository=repository,
            payment_gateway=MidtransGateway(),
        )
        self._reconciliation = ReconciliationService(
            order_repository=repository,
            payment_gateway=MidtransGateway(),
        )

    def get(self, request: Request) -> Response:
        status_filter = parse_status_filter(request.query_params.get("status"))
        filters = {"status": status_filter} if status_filter else None
        queryset = self._orders.list_orders(filters)

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = AdminOrderSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def patch(self, request: Request) -> Response:
        serializer = AdminStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reference = serializer.validated_data["orderId"].strip()
        status_value = serializer.validated_data["status"]
        if not reference or not status_value:
            return Response(
                {"detail": "orderId and status are required."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            dto = AdminStatusUpdateDTO(
                order_reference=reference,
                status=parse_status(status_value),
            )
            result = self._reconciliation.update_status(dto)
        except InvalidStatusValue:
            return Response(
                {"detail": "Invalid status value."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except OrderNotFound:
            return _not_found()
        except OrderPersistenceError as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(result.to_response())


class AdminMetricsView(APIView):
    """Staff dashboard figures.

    GET /api/v1/admin/metrics/
    """

    permission_classes = [IsAdminUser]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._orders = OrderService(
            order_repository=OrderDjangoRepository(),
            payment_gateway=MidtransGateway(),
        )

    def get(self, request: Request) -> Response:
        try:
            metrics = self._orders.dashboard_metrics()
        except OrderPersistenceError as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(metrics.to_response())
