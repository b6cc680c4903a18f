"""Payment DRF serializers (webhook and client poll input)."""

from __future__ import annotations

from rest_framework import serializers


def _optional_token() -> serializers.CharField:
    return serializers.CharField(
        required=False, allow_null=True, allow_blank=True, default=None
    )


class PaymentNotificationSerializer(serializers.Serializer):
    """Gateway webhook body; only ``order_id`` is mandatory (checked by the view)."""

    order_id = serializers.CharField(required=False, allow_blank=True, default="")
    transaction_status = _optional_token()
    fraud_status = _optional_token()
    status_code = _optional_token()
    gross_amount = _optional_token()
    signature_key = _optional_token()


class PaymentStatusQuerySerializer(serializers.Serializer):
    orderId = serializers.CharField(required=False, allow_null=True, allow_blank=True, default="")
    orderNumber = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, default=""
    )

    def references(self) -> list[str]:
        data = self.validated_data
        return [
            value.strip()
            for value in (data.get("orderId"), data.get("orderNumber"))
            if value and value.strip()
        ]
