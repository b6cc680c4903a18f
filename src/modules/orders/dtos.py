"""Order DTOs for the service layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are the
contracts between the API layer (DRF serializers) and the service layer.
DTOs are immutable (``frozen=True``).

Input:
- ``PaymentNotificationDTO``: gateway webhook payload.
- ``PaymentStatusQueryDTO``: client poll (order id and/or order number).
- ``AdminStatusUpdateDTO``: manual status change.
- ``CheckoutDTO``: customer + cart snapshot.

Output:
- ``ReconciliationResultDTO``: uniform result of the three reconciliation
  paths, serialised with camelCase keys.
- ``CheckoutResultDTO``: created order + hosted payment session.
- ``DashboardMetricsDTO``: staff dashboard aggregates.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from modules.orders.constants import OrderStatus

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class PaymentNotificationDTO(BaseModel):
    """Webhook notification sent by the payment gateway.

    ``order_id`` is the store's order number.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str
    transaction_status: Optional[str] = None
    fraud_status: Optional[str] = None
    status_code: Optional[str] = None
    gross_amount: Optional[str] = None
    signature_key: Optional[str] = None

    @field_validator("order_id")
    @classmethod
    def order_id_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("order_id is required.")
        return v


class PaymentStatusQueryDTO(BaseModel):
    """Client poll: each reference is tried as an id, then as an order number."""

    model_config = ConfigDict(frozen=True)

    references: List[str]

    @field_validator("references")
    @classmethod
    def references_must_not_be_empty(cls, v: List[str]) -> List[str]:
        cleaned = [ref.strip() for ref in v if ref and ref.strip()]
        if not cleaned:
            raise ValueError("orderId or orderNumber is required.")
        return cleaned


class AdminStatusUpdateDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_reference: str
    status: OrderStatus


class CheckoutCustomerDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: str
    email: str
    address: str
    city: str
    zip_code: str


class CheckoutItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str = ""
    product_name: str
    price: Decimal
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("price")
    @classmethod
    def price_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Price must not be negative.")
        return v


class CheckoutDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer: CheckoutCustomerDTO
    items: List[CheckoutItemDTO]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[CheckoutItemDTO]) -> List[CheckoutItemDTO]:
        if not v:
            raise ValueError("Cart is empty.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class _CamelOutput(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class ReconciliationResultDTO(_CamelOutput):
    """Uniform result shape for webhook, poll and admin updates.

    ``updated`` distinguishes "transition applied" from "already in that
    state".  ``order_id`` is ``None`` only for acknowledged webhooks whose
    order number is unknown.
    """

    message: str
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    status: str
    payment_status: str
    updated: bool
    transaction_status: Optional[str] = None
    mapped_status: Optional[str] = None
    status_code: Optional[str] = None

    def to_response(self) -> dict:
        data = super().to_response()
        for key in ("transactionStatus", "mappedStatus", "statusCode"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class PaymentSessionDTO(_CamelOutput):
    token: str
    redirect_url: str


class CheckoutResultDTO(_CamelOutput):
    order_id: str
    order_number: str
    payment: PaymentSessionDTO
    is_mock: bool


class MetricPointDTO(_CamelOutput):
    label: str
    value: int


class DashboardMetricsDTO(_CamelOutput):
    """Staff dashboard figures; amounts are rounded to whole currency units."""

    total_sales: int
    orders_today: int
    revenue_today: int
    revenue_week: int
    revenue_month: int
    weekly_sales: List[MetricPointDTO]
    status_mix: List[MetricPointDTO]
