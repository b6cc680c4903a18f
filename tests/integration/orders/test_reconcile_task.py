"""Integration tests for the periodic pending-payment reconciliation task."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.utils import timezone

from modules.orders.models import Order
from modules.orders.tasks import reconcile_pending_payments

pytestmark = pytest.mark.integration


def _reply(transaction_status):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = 200
    resp.ok = True
    resp.json.return_value = {"transaction_status": transaction_status, "status_code": "200"}
    return resp


def _age(order_number, **delta):
    Order.objects.filter(order_number=order_number).update(
        created_at=timezone.now() - timedelta(**delta)
    )


def test_polls_pending_orders_in_window(make_order):
    make_order("EC-100001")
    make_order("EC-100002")
    make_order("EC-100003")
    make_order("EC-100004", status="paid")
    _age("EC-100001", hours=1)
    _age("EC-100002", hours=2)
    _age("EC-100003", days=5)
    _age("EC-100004", hours=1)

    replies = {"EC-100001": _reply("settlement"), "EC-100002": _reply("pending")}

    def fake_get(url, **kwargs):
        return replies[url.rsplit("/", 2)[-2]]

    with patch("modules.payments.gateway.requests.get", side_effect=fake_get) as get:
        summary = reconcile_pending_payments()

    assert summary == {"checked": 2, "updated": 1, "failed": 0, "skipped": False}
    assert get.call_count == 2
    assert Order.objects.get(order_number="EC-100001").status == "paid"
    assert Order.objects.get(order_number="EC-100002").status == "pending"
    assert Order.objects.get(order_number="EC-100003").status == "pending"


def test_fresh_orders_are_left_to_the_webhook(make_order):
    make_order("EC-100001")

    with patch("modules.payments.gateway.requests.get") as get:
        summary = reconcile_pending_payments()

    assert summary["checked"] == 0
    get.assert_not_called()


def test_gateway_failure_does_not_stop_the_batch(make_order):
    make_order("EC-100001")
    make_order("EC-100002")
    _age("EC-100001", hours=2)
    _age("EC-100002", hours=1)

    with patch(
        "modules.payments.gateway.requests.get",
        side_effect=[requests.ConnectionError("reset"), _reply("expire")],
    ):
        summary = reconcile_pending_payments()

    assert summary == {"checked": 2, "updated": 1, "failed": 1, "skipped": False}
    assert Order.objects.get(order_number="EC-100002").status == "canceled"


def test_skipped_without_gateway_credentials(make_order, settings):
    settings.MIDTRANS_MERCHANT_ID = ""
    make_order("EC-100001")
    _age("EC-100001", hours=1)

    summary = reconcile_pending_payments.delay().get()

    assert summary["skipped"] is True
    assert Order.objects.get(order_number="EC-100001").status == "pending"
