"""Order status transition resolver.

A single decision function shared by the webhook, poll and admin paths.
Given what is stored and what was just observed, it returns either a
no-op (nothing to write) or the ``(status, payment_status, label)`` triple
to persist.

The resolver trusts the most recent signal: a target ranked behind the
current status (e.g. ``paid`` -> ``pending`` on a late redelivery) is still
applied when it differs from what is stored.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.status import (
    normalize_stored_status,
    payment_status_for,
    status_label,
    stored_payment_token,
)


class TransitionKind(str, enum.Enum):
    NOOP = "noop"
    APPLY = "apply"


@dataclass(frozen=True)
class Transition:
    kind: TransitionKind
    previous_status: OrderStatus
    status: OrderStatus
    payment_status: PaymentStatus
    label: str

    @property
    def is_noop(self) -> bool:
        return self.kind is TransitionKind.NOOP


def resolve_transition(
    current_status: Optional[str],
    current_payment_status: Optional[str],
    observed_status: str,
) -> Transition:
    """Decide what, if anything, must be persisted for *observed_status*."""
    current = normalize_stored_status(current_status)
    current_payment = stored_payment_token(current_payment_status)
    target = normalize_stored_status(observed_status)
    target_payment = payment_status_for(target)

    if current == target and current_payment == target_payment.value:
        kind = TransitionKind.NOOP
    else:
        kind = TransitionKind.APPLY

    return Transition(
        kind=kind,
        previous_status=current,
        status=target,
        payment_status=target_payment,
        label=status_label(target),
    )
