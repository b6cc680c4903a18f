import json
import logging

import pytest
from django.conf import settings


class TestRequestLogging:
    def test_request_finished_carries_status_and_duration(self, client, caplog):
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID="duration-check")
        finished = [
            record.msg
            for record in caplog.records
            if isinstance(record.msg, dict) and record.msg.get("event") == "request_finished"
        ]
        assert finished
        assert finished[-1]["status_code"] == 200
        assert finished[-1]["correlation_id"] == "duration-check"
        assert "duration_ms" in finished[-1]

    @pytest.mark.integration
    def test_reconciliation_logs_share_request_id(self, client, caplog, make_order):
        make_order("EC-100001")
        with caplog.at_level(logging.INFO):
            client.post(
                "/api/v1/payments/notification/",
                {"order_id": "EC-100001", "transaction_status": "settlement"},
                content_type="application/json",
                HTTP_X_REQUEST_ID="webhook-trace-1",
            )
        applied = [
            record.msg
            for record in caplog.records
            if isinstance(record.msg, dict)
            and record.msg.get("event") == "reconciliation.applied"
        ]
        assert applied
        assert applied[0]["correlation_id"] == "webhook-trace-1"
        assert applied[0]["order_number"] == "EC-100001"


class TestJsonFormatter:
    def _format(self, message, **extra):
        from structlog.stdlib import ProcessorFormatter

        config = settings.LOGGING["formatters"]["json"]
        formatter = ProcessorFormatter(
            processors=config["processors"],
            foreign_pre_chain=config["foreign_pre_chain"],
        )
        record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
        return json.loads(formatter.format(record))

    def test_stdlib_records_rendered_as_json(self):
        data = self._format("plain message")
        assert data["event"] == "plain message"
        assert data["level"] == "info"
        assert "timestamp" in data

    def test_server_key_masked_in_rendered_output(self):
        data = self._format("auth with SB-Mid-server-leaky123")
        assert "leaky123" not in data["event"]
        assert "***MASKED***" in data["event"]
