"""Order domain constants.

Defines the canonical order status, the derived payment status, and the
lookup tables used by the status normaliser and the transition resolver.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELED = "canceled", "Canceled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"


# Storage spelling differs from the domain spelling for cancellation.
STORAGE_CANCELED_TOKEN = "cancelled"

STATUS_RANK: dict[str, int] = {
    OrderStatus.CANCELED: 0,
    OrderStatus.PENDING: 1,
    OrderStatus.PAID: 2,
    OrderStatus.SHIPPED: 3,
    OrderStatus.DELIVERED: 4,
}

STATUS_LABELS: dict[str, str] = {
    OrderStatus.PENDING: "Order Placed",
    OrderStatus.PAID: "Payment Confirmed",
    OrderStatus.SHIPPED: "Shipped",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELED: "Canceled",
}

PAYMENT_STATUS_BY_ORDER_STATUS: dict[str, str] = {
    OrderStatus.PAID: PaymentStatus.SUCCESS,
    OrderStatus.CANCELED: PaymentStatus.FAILED,
}

# Progress steps shown on the order timeline (cancellation is off-track).
PROGRESS_STATUSES: tuple[str, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PAID,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)


class GatewayTransactionStatus:
    """Transaction status tokens reported by the payment gateway."""

    CAPTURE = "capture"
    SETTLEMENT = "settlement"
    PENDING = "pending"
    DENY = "deny"
    EXPIRE = "expire"
    CANCEL = "cancel"


GATEWAY_FRAUD_CHALLENGE = "challenge"

GATEWAY_CANCELED_STATUSES: frozenset[str] = frozenset(
    {
        GatewayTransactionStatus.DENY,
        GatewayTransactionStatus.EXPIRE,
        GatewayTransactionStatus.CANCEL,
    }
)

ORDER_NUMBER_PREFIX = "EC-"
ORDER_NUMBER_MAX_RETRIES = 5

# Checkout pricing
FREE_SHIPPING_THRESHOLD = 250
FLAT_SHIPPING_COST = 12
TAX_RATE = "0.08"
DISCOUNT_THRESHOLD = 300
DISCOUNT_RATE = "0.07"
