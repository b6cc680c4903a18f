"""Unit tests for the order timeline projection."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from modules.orders.timeline import build_timeline

pytestmark = pytest.mark.unit

T0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def _entry(status: str, minutes: int) -> SimpleNamespace:
    at = T0 + timedelta(minutes=minutes)
    return SimpleNamespace(status=status, occurred_at=at, created_at=at)


def test_progress_steps_for_paid_order():
    timeline = build_timeline("paid", [_entry("pending", 0), _entry("paid", 5)])

    assert [step["status"] for step in timeline] == [
        "pending",
        "paid",
        "shipped",
        "delivered",
    ]
    assert [step["done"] for step in timeline] == [True, True, False, False]
    assert timeline[0]["label"] == "Order Placed"
    assert timeline[1]["at"] == T0 + timedelta(minutes=5)
    assert timeline[2]["at"] is None


def test_step_time_is_first_occurrence():
    entries = [
        _entry("paid", 10),
        _entry("pending", 0),
        _entry("pending", 20),
        _entry("paid", 30),
    ]
    timeline = build_timeline("paid", entries)

    assert timeline[0]["at"] == T0
    assert timeline[1]["at"] == T0 + timedelta(minutes=10)


def test_manual_shipping_marks_earlier_steps_done():
    timeline = build_timeline("shipped", [_entry("pending", 0), _entry("shipped", 3)])

    assert [step["done"] for step in timeline] == [True, True, True, False]
    assert timeline[1]["at"] is None


def test_canceled_order_shows_placement_and_cancellation():
    timeline = build_timeline(
        "cancelled", [_entry("pending", 0), _entry("cancelled", 7)]
    )

    assert [(step["status"], step["label"]) for step in timeline] == [
        ("pending", "Order Placed"),
        ("canceled", "Canceled"),
    ]
    assert timeline[1]["at"] == T0 + timedelta(minutes=7)
    assert all(step["done"] for step in timeline)
