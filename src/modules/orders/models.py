"""Order, OrderItem, and OrderTracking models.

Rules implemented here:
- ``order_number`` is auto-generated (``EC-XXXXXXXX``) and never changes.
- ``payment_status`` is derived from ``status``; both are written together
  by the repository's ``apply_transition`` only.
- OrderItem is a snapshot of name / unit price / quantity taken at checkout
  and is independent of later catalog changes.
- OrderTracking is an append-only audit trail; rows are never updated.
- Orders are never deleted.
"""

from __future__ import annotations

import secrets
import time
from decimal import Decimal
from typing import Any

import structlog
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models.functions import Now

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_PREFIX,
    PaymentStatus,
)
from modules.orders.fields import OrderStatusField
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is the human-facing identifier and doubles as the
    payment gateway's order id.  The UUIDv7 ``id`` is used for internal
    references.  Customer name and email are denormalised at checkout.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    customer_name: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    customer_email: models.EmailField = models.EmailField(blank=True, default="")
    status = OrderStatusField()
    payment_status: models.CharField = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    shipping_cost: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    discount: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    shipping_address: models.JSONField = models.JSONField(default=dict, blank=True)
    payment_method: models.CharField = models.CharField(
        max_length=50, blank=True, default="midtrans"
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
            models.Index(fields=["customer_email"], name="orders_email_idx"),
        ]

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number(attempt: int = 0) -> str:
        """Generate ``EC-`` + 8 digits; time based first, random on retries."""
        if attempt == 0:
            digits = str(int(time.time() * 1000))[-8:]
        else:
            digits = f"{secrets.randbelow(10**8):08d}"
        return f"{ORDER_NUMBER_PREFIX}{digits}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number(attempt)
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
                logger.warning(
                    "order.number_collision", candidate=candidate, attempt=attempt
                )
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item snapshot.

    ``product_id`` references the external catalog and may be empty.
    ``line_total`` is always ``quantity * unit_price``, recalculated on save.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_id: models.CharField = models.CharField(
        max_length=64, blank=True, default=""
    )
    product_name: models.CharField = models.CharField(max_length=255)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
    )
    line_total: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.line_total = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity}"


class OrderTracking(BaseModel):
    """Append-only status log for an order.

    ``label``, ``message`` and ``occurred_at`` are optional columns: they
    carry database defaults so that rows can still be appended to tables
    created before those columns existed (see the repository fallback).
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="tracking",
    )
    status = OrderStatusField()
    label: models.CharField = models.CharField(
        max_length=100, blank=True, default="", db_default=""
    )
    message: models.TextField = models.TextField(blank=True, default="", db_default="")
    occurred_at: models.DateTimeField = models.DateTimeField(db_default=Now())

    class Meta:
        db_table = "order_tracking"
        ordering = ["occurred_at", "created_at"]
        indexes = [
            models.Index(
                fields=["order", "occurred_at"],
                name="tracking_order_occurred_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.status} ({self.label or self.message})"
