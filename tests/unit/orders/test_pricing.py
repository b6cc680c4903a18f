"""Unit tests for checkout pricing and order number generation."""

from __future__ import annotations

import re
from decimal import Decimal

import pytest
from freezegun import freeze_time

from modules.orders.dtos import CheckoutItemDTO
from modules.orders.models import Order
from modules.orders.services import compute_totals

pytestmark = pytest.mark.unit


def _item(price: str, quantity: int = 1) -> CheckoutItemDTO:
    return CheckoutItemDTO(product_name="Item", price=Decimal(price), quantity=quantity)


def test_small_cart_pays_flat_shipping_and_tax():
    totals = compute_totals([_item("89.00"), _item("24.50", 2)])

    assert totals.subtotal == Decimal("138.00")
    assert totals.shipping_cost == Decimal("12.00")
    assert totals.tax == Decimal("11.04")
    assert totals.discount == Decimal("0.00")
    # 138 + 12 + 11.04 = 161.04
    assert totals.total == Decimal("161")


def test_shipping_is_free_from_threshold():
    totals = compute_totals([_item("250.00")])

    assert totals.shipping_cost == Decimal("0.00")
    assert totals.discount == Decimal("0.00")
    assert totals.total == Decimal("270")


def test_discount_applies_above_threshold():
    totals = compute_totals([_item("400.00")])

    assert totals.shipping_cost == Decimal("0.00")
    assert totals.tax == Decimal("32.00")
    assert totals.discount == Decimal("28.00")
    assert totals.total == Decimal("404")


def test_no_discount_at_exactly_threshold():
    assert compute_totals([_item("300.00")]).discount == Decimal("0.00")


def test_total_rounds_half_up():
    # 5 + 12 + 0.40 = 17.40 -> 17 ; 6.25 + 12 + 0.50 = 18.75 -> 19
    assert compute_totals([_item("5.00")]).total == Decimal("17")
    assert compute_totals([_item("6.25")]).total == Decimal("19")


def test_total_is_never_below_one():
    assert compute_totals([_item("0.00")]).total == Decimal("12")
    assert compute_totals([]).total >= Decimal("1")


def test_item_validation():
    with pytest.raises(ValueError):
        CheckoutItemDTO(product_name="Item", price=Decimal("1.00"), quantity=0)
    with pytest.raises(ValueError):
        CheckoutItemDTO(product_name="Item", price=Decimal("-1.00"), quantity=1)


class TestOrderNumber:
    @freeze_time("2026-03-01 10:00:00")
    def test_first_attempt_uses_last_eight_timestamp_digits(self):
        number = Order.generate_order_number()
        expected_digits = str(int(1772359200 * 1000))[-8:]
        assert number == f"EC-{expected_digits}"

    def test_retries_use_random_digits(self):
        assert re.fullmatch(r"EC-\d{8}", Order.generate_order_number(attempt=1))

    def test_save_assigns_unique_number_on_collision(self, make_order):
        with freeze_time("2026-03-01 10:00:00"):
            taken = Order.generate_order_number()
            make_order(order_number=taken)
            order = Order(customer_name="Bima", customer_email="bima@example.com")
            order.save()

        assert order.order_number != taken
        assert re.fullmatch(r"EC-\d{8}", order.order_number)
