"""Staff dashboard metrics.

A read-only projection over canonical orders.  An order counts as paid when
its payment succeeded or its status is ``paid``, ``shipped`` or
``delivered``.  Day boundaries follow the active time zone; the week is
today plus the six days before it.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.db.models import Count, Q, QuerySet, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.dtos import DashboardMetricsDTO, MetricPointDTO
from modules.orders.status import normalize_stored_status

PAID_STATUSES = (OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.DELIVERED)
WEEK_DAYS = 7


def paid_orders() -> Q:
    return Q(payment_status=PaymentStatus.SUCCESS) | Q(status__in=PAID_STATUSES)


def whole_units(amount: Optional[Decimal]) -> int:
    return int(Decimal(amount or 0).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_dashboard_metrics(orders: QuerySet, now: datetime) -> DashboardMetricsDTO:
    start_today = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    start_week = start_today - timedelta(days=WEEK_DAYS - 1)
    start_month = start_today.replace(day=1)

    orders = orders.order_by()
    paid = orders.filter(paid_orders())
    revenue = paid.aggregate(
        total=Sum("total"),
        today=Sum("total", filter=Q(created_at__gte=start_today)),
        week=Sum("total", filter=Q(created_at__gte=start_week)),
        month=Sum("total", filter=Q(created_at__gte=start_month)),
    )

    daily = dict(
        paid.filter(created_at__gte=start_week)
        .annotate(day=TruncDate("created_at"))
        .values("day")
        .annotate(amount=Sum("total"))
        .values_list("day", "amount")
    )
    weekly_sales = []
    for offset in range(WEEK_DAYS - 1, -1, -1):
        day = (start_today - timedelta(days=offset)).date()
        weekly_sales.append(
            MetricPointDTO(label=day.strftime("%a"), value=whole_units(daily.get(day)))
        )

    # legacy spellings group separately in SQL
    counts: Counter = Counter()
    for token, count in orders.values("status").annotate(count=Count("id")).values_list(
        "status", "count"
    ):
        counts[normalize_stored_status(token)] += count

    return DashboardMetricsDTO(
        total_sales=whole_units(revenue["total"]),
        orders_today=orders.filter(created_at__gte=start_today).count(),
        revenue_today=whole_units(revenue["today"]),
        revenue_week=whole_units(revenue["week"]),
        revenue_month=whole_units(revenue["month"]),
        weekly_sales=weekly_sales,
        status_mix=[
            MetricPointDTO(label=status.label, value=counts[status]) for status in OrderStatus
        ],
    )
