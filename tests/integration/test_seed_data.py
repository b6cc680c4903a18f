from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from modules.orders.models import Order, OrderTracking

pytestmark = pytest.mark.integration


def test_seed_creates_demo_orders_once():
    out = StringIO()
    call_command("seed_data", stdout=out)
    call_command("seed_data", stdout=StringIO())

    assert "orders=5" in out.getvalue()
    assert Order.objects.count() == 5
    assert get_user_model().objects.filter(username="admin", is_staff=True).exists()

    statuses = dict(Order.objects.values_list("order_number", "status"))
    assert statuses == {
        "EC-100001": "pending",
        "EC-100002": "paid",
        "EC-100003": "shipped",
        "EC-100004": "delivered",
        "EC-100005": "canceled",
    }


def test_seeded_history_walks_every_step():
    call_command("seed_data", stdout=StringIO())

    delivered = Order.objects.get(order_number="EC-100004")
    labels = list(
        OrderTracking.objects.filter(order=delivered)
        .order_by("occurred_at")
        .values_list("label", flat=True)
    )
    assert labels == ["Order Placed", "Payment Confirmed", "Shipped", "Delivered"]
    assert delivered.payment_status == "pending"

    paid = Order.objects.get(order_number="EC-100002")
    assert paid.payment_status == "success"


class TestCurrentUser:
    def test_returns_identity(self, staff_client):
        data = staff_client.get("/api/v1/me").json()

        assert data == {"username": "staff", "email": "staff@example.com", "isStaff": True}

    def test_requires_token(self, api_client):
        assert api_client.get("/api/v1/me").status_code == 401
