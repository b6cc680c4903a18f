from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Any, Callable

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.transitions import resolve_transition

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def staff_client():
    client = APIClient()
    user = User.objects.create_user(
        username="staff", email="staff@example.com", password="testpass123", is_staff=True
    )
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def customer_client():
    client = APIClient()
    user = User.objects.create_user(
        username="alya", email="alya@example.com", password="testpass123"
    )
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def order_repository():
    return OrderDjangoRepository()


@pytest.fixture()
def make_order(order_repository) -> Callable[..., Order]:
    """Create an order through the repository, optionally moved to *status*."""

    def _make(
        order_number: str = "EC-100001",
        status: str = "pending",
        customer_email: str = "alya@example.com",
        **overrides: Any,
    ) -> Order:
        data = {
            "order_number": order_number,
            "customer_name": "Alya Putri",
            "customer_email": customer_email,
            "subtotal": Decimal("138.00"),
            "shipping_cost": Decimal("12.00"),
            "tax": Decimal("11.04"),
            "discount": Decimal("0.00"),
            "total": Decimal("161"),
            "shipping_address": {
                "address_line1": "Jl. Melati No. 1",
                "city": "Jakarta",
                "postal_code": "10110",
            },
            "items": [
                {"product_name": "Linen Overshirt", "unit_price": Decimal("89.00"), "quantity": 1},
                {"product_name": "Canvas Tote", "unit_price": Decimal("24.50"), "quantity": 2},
            ],
        }
        data.update(overrides)
        order = order_repository.create(data)
        if status != "pending":
            transition = resolve_transition(order.status, order.payment_status, status)
            order = order_repository.apply_transition(
                order, transition, order.created_at + timedelta(seconds=1)
            )
        return Order.objects.get(pk=order.pk)

    return _make
