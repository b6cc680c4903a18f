"""Custom model fields for the orders module."""

from __future__ import annotations

from typing import Any

from django.core.exceptions import ValidationError
from django.db import models

from modules.orders.constants import OrderStatus
from modules.orders.status import (
    is_stored_status,
    normalize_stored_status,
    to_storage_status,
)


class OrderStatusField(models.CharField):
    """Order status column that speaks canonical statuses to Python code.

    Values read from the database (including legacy spellings such as
    ``cancelled``) are normalised to ``OrderStatus``; values written or used
    in lookups are converted to the storage token.  Writes and lookups
    reject tokens that name no status instead of coercing them to pending.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("max_length", 20)
        kwargs.setdefault("choices", OrderStatus.choices)
        kwargs.setdefault("default", OrderStatus.PENDING)
        super().__init__(*args, **kwargs)

    def from_db_value(self, value, expression, connection):
        if value is None:
            return value
        return normalize_stored_status(value)

    def to_python(self, value):
        if value is None:
            return value
        return normalize_stored_status(value)

    def get_prep_value(self, value):
        if value is None:
            return value
        if not is_stored_status(value):
            raise ValidationError(
                f"Unknown order status: {value!r}", code="invalid_status"
            )
        return to_storage_status(value)
