"""Status normalisation.

Every raw status token that reaches the orders module (gateway transaction
statuses, persisted/legacy values, admin selections) is converted into one
``OrderStatus`` here.  The normalisers never raise on unknown input:
anything unrecognised is treated as ``pending``.  Only ``parse_status``,
used for operator input, rejects unknown tokens.
"""

from __future__ import annotations

from typing import Optional

from modules.orders.constants import (
    GATEWAY_CANCELED_STATUSES,
    GATEWAY_FRAUD_CHALLENGE,
    PAYMENT_STATUS_BY_ORDER_STATUS,
    STATUS_LABELS,
    STATUS_RANK,
    STORAGE_CANCELED_TOKEN,
    GatewayTransactionStatus,
    OrderStatus,
    PaymentStatus,
)
from modules.orders.exceptions import InvalidStatusValue


def _clean(token: Optional[str]) -> str:
    if not token:
        return ""
    return str(token).strip().lower()


def normalize_gateway_status(
    transaction_status: Optional[str],
    fraud_status: Optional[str] = None,
) -> OrderStatus:
    """Map a gateway transaction status (plus fraud flag) to ``OrderStatus``."""
    transaction = _clean(transaction_status)
    if not transaction:
        return OrderStatus.PENDING

    if transaction == GatewayTransactionStatus.CAPTURE:
        if _clean(fraud_status) == GATEWAY_FRAUD_CHALLENGE:
            return OrderStatus.PENDING
        return OrderStatus.PAID
    if transaction == GatewayTransactionStatus.SETTLEMENT:
        return OrderStatus.PAID
    if transaction in GATEWAY_CANCELED_STATUSES:
        return OrderStatus.CANCELED
    return OrderStatus.PENDING


def normalize_stored_status(token: Optional[str]) -> OrderStatus:
    """Map a persisted or legacy status token to ``OrderStatus``."""
    cleaned = _clean(token)
    if cleaned == STORAGE_CANCELED_TOKEN:
        return OrderStatus.CANCELED
    if cleaned in OrderStatus.values:
        return OrderStatus(cleaned)
    return OrderStatus.PENDING


def is_stored_status(token: Optional[str]) -> bool:
    """True when *token* names a status (canonical or legacy spelling)."""
    cleaned = _clean(token)
    return cleaned == STORAGE_CANCELED_TOKEN or cleaned in OrderStatus.values


def to_storage_status(status: Optional[str]) -> str:
    """Return the token written to the database for *status*."""
    canonical = normalize_stored_status(status)
    if canonical == OrderStatus.CANCELED:
        return STORAGE_CANCELED_TOKEN
    return canonical.value


def stored_payment_token(token: Optional[str]) -> str:
    """Comparable form of a persisted payment status (missing -> pending)."""
    return _clean(token) or PaymentStatus.PENDING.value


def payment_status_for(status: str) -> PaymentStatus:
    """Derived payment status: ``paid`` -> success, ``canceled`` -> failed."""
    return PaymentStatus(
        PAYMENT_STATUS_BY_ORDER_STATUS.get(
            normalize_stored_status(status), PaymentStatus.PENDING
        )
    )


def status_label(status: str) -> str:
    return STATUS_LABELS[normalize_stored_status(status)]


def status_rank(status: str) -> int:
    return STATUS_RANK[normalize_stored_status(status)]


def parse_status(token: Optional[str]) -> OrderStatus:
    """Strict counterpart of ``normalize_stored_status`` for operator input.

    Only canonical tokens are accepted.
    """
    cleaned = _clean(token)
    if cleaned not in OrderStatus.values:
        raise InvalidStatusValue(f"Invalid status value: {token!r}")
    return OrderStatus(cleaned)
