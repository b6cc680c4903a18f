"""Domain events for the orders module."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when checkout creates an order."""

    order_number: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when a reconciliation applies a new status."""

    order_number: str = ""
    old_status: str = ""
    new_status: str = ""
    payment_status: str = ""
    trigger: str = ""
