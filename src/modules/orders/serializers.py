"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.

Checkout input uses the storefront's camelCase keys.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderItem, OrderTracking
from modules.orders.timeline import build_timeline

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CheckoutCustomerSerializer(serializers.Serializer):
    fullName = serializers.CharField(required=False, default="", allow_blank=True)
    email = serializers.CharField(required=False, default="", allow_blank=True)
    address = serializers.CharField(required=False, default="", allow_blank=True)
    city = serializers.CharField(required=False, default="", allow_blank=True)
    zipCode = serializers.CharField(required=False, default="", allow_blank=True)


class CheckoutItemSerializer(serializers.Serializer):
    productId = serializers.CharField(required=False, default="", allow_blank=True)
    productName = serializers.CharField(max_length=255)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    quantity = serializers.IntegerField(min_value=1)


class CheckoutSerializer(serializers.Serializer):
    """Validates the checkout payload (customer + cart snapshot)."""

    customer = CheckoutCustomerSerializer()
    items = CheckoutItemSerializer(many=True, required=False, default=list)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Cart is empty.")
        return value


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "quantity",
            "unit_price",
            "line_total",
        ]
        read_only_fields = fields


class TrackingEntrySerializer(serializers.ModelSerializer):
    """Read serializer for tracking entries (label falls back to message)."""

    label = serializers.SerializerMethodField()

    class Meta:
        model = OrderTracking
        fields = ["id", "status", "label", "occurred_at"]
        read_only_fields = fields

    def get_label(self, obj: OrderTracking) -> str:
        return obj.label or obj.message


class TimelineStepSerializer(serializers.Serializer):
    status = serializers.CharField()
    label = serializers.CharField()
    done = serializers.BooleanField()
    at = serializers.DateTimeField(allow_null=True)


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items, tracking and timeline."""

    items = OrderItemSerializer(many=True, read_only=True)
    tracking = TrackingEntrySerializer(many=True, read_only=True)
    timeline = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "customer_email",
            "status",
            "payment_status",
            "subtotal",
            "shipping_cost",
            "tax",
            "discount",
            "total",
            "shipping_address",
            "payment_method",
            "created_at",
            "updated_at",
            "items",
            "tracking",
            "timeline",
        ]
        read_only_fields = fields

    def get_timeline(self, obj: Order) -> list:
        steps = build_timeline(obj.status, obj.tracking.all())
        return TimelineStepSerializer(steps, many=True).data


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    items_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "status",
            "payment_status",
            "total",
            "items_count",
            "created_at",
        ]
        read_only_fields = fields


class AdminOrderSerializer(serializers.ModelSerializer):
    """Admin dashboard row, in the dashboard's camelCase."""

    orderNumber = serializers.CharField(source="order_number", read_only=True)
    customerName = serializers.CharField(source="customer_name", read_only=True)
    customerEmail = serializers.CharField(source="customer_email", read_only=True)
    paymentStatus = serializers.CharField(source="payment_status", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)
    itemsCount = serializers.IntegerField(source="items_count", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "orderNumber",
            "customerName",
            "customerEmail",
            "status",
            "paymentStatus",
            "total",
            "createdAt",
            "updatedAt",
            "itemsCount",
        ]
        read_only_fields = fields


class AdminStatusUpdateSerializer(serializers.Serializer):
    """Shape of the admin status update; the status token is checked by the view."""

    orderId = serializers.CharField(required=False, default="", allow_blank=True)
    status = serializers.CharField(required=False, default="", allow_blank=True)
