"""Payment gateway interface.

The orders service depends on this contract only; the concrete Midtrans
client lives in ``modules.payments.gateway``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class TransactionStatus:
    """Gateway view of a transaction, in the gateway's own vocabulary."""

    order_id: str
    transaction_status: Optional[str] = None
    fraud_status: Optional[str] = None
    status_code: Optional[str] = None
    status_message: Optional[str] = None
    payment_type: Optional[str] = None

    @classmethod
    def from_payload(cls, order_id: str, payload: Mapping[str, Any]) -> TransactionStatus:
        return cls(
            order_id=str(payload.get("order_id") or order_id),
            transaction_status=payload.get("transaction_status"),
            fraud_status=payload.get("fraud_status"),
            status_code=payload.get("status_code"),
            status_message=payload.get("status_message"),
            payment_type=payload.get("payment_type"),
        )


@dataclass(frozen=True)
class ChargeCustomer:
    full_name: str
    email: str
    city: str = ""
    zip_code: str = ""


@dataclass(frozen=True)
class ChargeRequest:
    order_id: str
    gross_amount: int
    customer: ChargeCustomer
    callbacks: Dict[str, str] = field(default_factory=dict)
    enabled_payments: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SnapTransaction:
    token: str
    redirect_url: str


class IPaymentGateway(ABC):
    """Contract for the external payment gateway."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """``True`` when server credentials are available."""

    @abstractmethod
    def get_transaction_status(self, order_number: str) -> TransactionStatus:
        """Fetch the authoritative transaction status for *order_number*."""

    @abstractmethod
    def create_transaction(self, charge: ChargeRequest) -> SnapTransaction:
        """Create a hosted-payment transaction for a new order."""

    @abstractmethod
    def verify_notification_signature(self, payload: Mapping[str, Any]) -> bool:
        """Check the signature carried by a webhook notification."""
