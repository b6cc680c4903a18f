"""Integration tests for POST /api/v1/payments/status/ (client poll).

The Midtrans status endpoint is patched at ``requests.get``.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests
from django.db import DatabaseError
from rest_framework.throttling import ScopedRateThrottle

from modules.orders.models import Order, OrderTracking

pytestmark = pytest.mark.integration

URL = "/api/v1/payments/status/"


def _gateway_reply(transaction_status, fraud_status=None, status_code=200):
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.json.return_value = {
        "order_id": "EC-100001",
        "transaction_status": transaction_status,
        "fraud_status": fraud_status,
        "status_code": str(status_code),
    }
    return resp


@pytest.fixture()
def midtrans_get():
    with patch("modules.payments.gateway.requests.get") as get:
        yield get


class TestPaymentStatusSync:
    def test_settled_payment_is_applied(self, api_client, make_order, midtrans_get):
        order = make_order("EC-100001")
        midtrans_get.return_value = _gateway_reply("settlement")

        response = api_client.post(URL, {"orderId": str(order.pk)}, format="json")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Payment status synchronized"
        assert data["status"] == "paid"
        assert data["paymentStatus"] == "success"
        assert data["transactionStatus"] == "settlement"
        assert data["mappedStatus"] == "paid"
        assert "statusCode" not in data
        assert midtrans_get.call_args.args[0].endswith("/v2/EC-100001/status")

    def test_lookup_by_order_number(self, api_client, make_order, midtrans_get):
        make_order("EC-100001")
        midtrans_get.return_value = _gateway_reply("expire")

        response = api_client.post(URL, {"orderNumber": "EC-100001"}, format="json")

        assert response.json()["status"] == "canceled"
        assert response.json()["paymentStatus"] == "failed"

    def test_up_to_date_order(self, api_client, make_order, midtrans_get):
        order = make_order("EC-100001")
        midtrans_get.return_value = _gateway_reply("pending")

        response = api_client.post(URL, {"orderId": str(order.pk)}, format="json")

        assert response.json()["message"] == "Payment status already up-to-date"
        assert response.json()["updated"] is False
        assert OrderTracking.objects.filter(order=order).count() == 1

    def test_unknown_order_writes_nothing(self, api_client, make_order, midtrans_get):
        make_order("EC-100001")
        before = OrderTracking.objects.count()

        response = api_client.post(URL, {"orderNumber": "EC-404"}, format="json")

        assert response.status_code == 404
        assert response.json() == {"detail": "Order not found."}
        midtrans_get.assert_not_called()
        assert OrderTracking.objects.count() == before
        assert Order.objects.get(order_number="EC-100001").status == "pending"

    def test_reference_required(self, api_client):
        response = api_client.post(URL, {"orderId": " ", "orderNumber": ""}, format="json")

        assert response.status_code == 400
        assert response.json() == {"detail": "orderId or orderNumber is required."}

    def test_gateway_failure_is_bad_gateway(self, api_client, make_order, midtrans_get):
        make_order("EC-100001")
        midtrans_get.side_effect = requests.Timeout("read timed out")

        response = api_client.post(URL, {"orderNumber": "EC-100001"}, format="json")

        assert response.status_code == 502
        assert Order.objects.get(order_number="EC-100001").status == "pending"

    def test_gateway_http_error_is_bad_gateway(self, api_client, make_order, midtrans_get):
        make_order("EC-100001")
        midtrans_get.return_value = _gateway_reply("pending", status_code=500)

        response = api_client.post(URL, {"orderNumber": "EC-100001"}, format="json")

        assert response.status_code == 502

    def test_unconfigured_gateway(self, api_client, make_order, midtrans_get, settings):
        settings.MIDTRANS_SERVER_KEY = ""
        make_order("EC-100001")

        response = api_client.post(URL, {"orderNumber": "EC-100001"}, format="json")

        assert response.status_code == 503
        midtrans_get.assert_not_called()

    def test_unconfigured_gateway_reported_before_lookup(self, api_client, settings):
        settings.MIDTRANS_CLIENT_KEY = ""

        response = api_client.post(URL, {"orderNumber": "EC-404"}, format="json")

        assert response.status_code == 503

    def test_poll_is_throttled(self, api_client, make_order, midtrans_get, monkeypatch):
        make_order("EC-100001")
        midtrans_get.return_value = _gateway_reply("pending")
        monkeypatch.setattr(
            ScopedRateThrottle,
            "THROTTLE_RATES",
            {**ScopedRateThrottle.THROTTLE_RATES, "payment_status_poll": "2/minute"},
        )

        codes = [
            api_client.post(URL, {"orderNumber": "EC-100001"}, format="json").status_code
            for _ in range(3)
        ]

        assert codes == [200, 200, 429]

    def test_lookup_failure_is_json_server_error(self, api_client, make_order, midtrans_get):
        make_order("EC-100001")

        with patch.object(
            Order.objects, "prefetch_related", side_effect=DatabaseError("connection lost")
        ):
            response = api_client.post(URL, {"orderNumber": "EC-100001"}, format="json")

        assert response.status_code == 500
        assert response.json() == {"detail": "connection lost"}
        midtrans_get.assert_not_called()
