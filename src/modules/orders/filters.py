from typing import Optional

import django_filters
from rest_framework.exceptions import ValidationError

from modules.orders.constants import STORAGE_CANCELED_TOKEN, OrderStatus
from modules.orders.models import Order

STATUS_FILTER_ALL = "all"


def parse_status_filter(value: Optional[str]) -> Optional[OrderStatus]:
    """Return the status to filter by, ``None`` for all orders.

    Accepts canonical statuses, the storage spelling ``cancelled`` and
    ``all``; raises ``ValidationError`` for anything else.
    """
    token = (value or "").strip().lower()
    if not token or token == STATUS_FILTER_ALL:
        return None
    if token == STORAGE_CANCELED_TOKEN:
        return OrderStatus.CANCELED
    if token in OrderStatus.values:
        return OrderStatus(token)
    raise ValidationError({"detail": "Invalid status filter"})


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(method="filter_status")
    email = django_filters.CharFilter(field_name="customer_email", lookup_expr="iexact")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(field_name="total", lookup_expr="gte")
    max_total = django_filters.NumberFilter(field_name="total", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "email",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
        ]

    def filter_status(self, queryset, name, value):
        status = parse_status_filter(value)
        if status is None:
            return queryset
        # exact lookups go through OrderStatusField, which writes "cancelled"
        return queryset.filter(status=status)
