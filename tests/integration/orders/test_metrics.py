"""Integration tests for the staff dashboard metrics projection."""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.utils import timezone
from freezegun import freeze_time

from modules.orders.metrics import build_dashboard_metrics, whole_units
from modules.orders.models import Order

pytestmark = pytest.mark.integration

NOW = datetime(2026, 3, 11, 15, 0, tzinfo=dt_timezone.utc)  # a Wednesday


def _created(order_number, *args):
    Order.objects.filter(order_number=order_number).update(
        created_at=datetime(*args, tzinfo=dt_timezone.utc)
    )


@pytest.fixture()
def orders(make_order):
    with freeze_time(NOW):
        make_order("EC-300001", status="paid")
        make_order("EC-300002", status="shipped", total=Decimal("100.40"))
        make_order("EC-300003", total=Decimal("50.00"))
        make_order("EC-300004", status="canceled")
        make_order("EC-300005", status="delivered", total=Decimal("200.00"))
        make_order("EC-300006", total=Decimal("10.50"))
    _created("EC-300002", 2026, 3, 9, 10)
    _created("EC-300005", 2026, 2, 19, 9)
    _created("EC-300006", 2026, 3, 2, 8)
    # settled before its status was tracked
    Order.objects.filter(order_number="EC-300006").update(payment_status="success")


class TestDashboardMetrics:
    def test_revenue_counts_paid_orders_only(self, orders):
        metrics = build_dashboard_metrics(Order.objects.all(), NOW)

        assert metrics.total_sales == 472
        assert metrics.revenue_today == 161
        assert metrics.revenue_week == 261
        assert metrics.revenue_month == 272

    def test_orders_today_counts_every_status(self, orders):
        assert build_dashboard_metrics(Order.objects.all(), NOW).orders_today == 3

    def test_weekly_sales_buckets(self, orders):
        weekly = build_dashboard_metrics(Order.objects.all(), NOW).weekly_sales

        assert [p.label for p in weekly] == ["Thu", "Fri", "Sat", "Sun", "Mon", "Tue", "Wed"]
        assert [p.value for p in weekly] == [0, 0, 0, 0, 100, 0, 161]

    def test_status_mix(self, orders):
        mix = build_dashboard_metrics(Order.objects.all(), NOW).status_mix

        assert [(p.label, p.value) for p in mix] == [
            ("Pending", 2),
            ("Paid", 1),
            ("Shipped", 1),
            ("Delivered", 1),
            ("Canceled", 1),
        ]

    def test_empty_store(self):
        metrics = build_dashboard_metrics(Order.objects.all(), NOW)

        assert metrics.total_sales == 0
        assert metrics.orders_today == 0
        assert [p.value for p in metrics.weekly_sales] == [0] * 7
        assert {p.value for p in metrics.status_mix} == {0}

    def test_day_boundaries_follow_active_time_zone(self, make_order):
        with freeze_time(NOW):
            make_order("EC-300001", status="paid")
        _created("EC-300001", 2026, 3, 10, 20)

        with timezone.override("Asia/Jakarta"):
            metrics = build_dashboard_metrics(Order.objects.all(), NOW)

        # 20:00 UTC on the 10th is already the 11th in Jakarta
        assert metrics.revenue_today == 161
        assert metrics.weekly_sales[-1].value == 161


@pytest.mark.parametrize(
    "amount, expected",
    [(None, 0), (Decimal("0.49"), 0), (Decimal("0.50"), 1), (Decimal("471.90"), 472)],
)
def test_whole_units_rounds_half_up(amount, expected):
    assert whole_units(amount) == expected
