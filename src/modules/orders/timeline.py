"""Order timeline projection.

Built only from the canonical order status and its tracking entries, so
the storage spelling of ``canceled`` never leaks into the read model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from modules.orders.constants import PROGRESS_STATUSES, OrderStatus
from modules.orders.status import normalize_stored_status, status_label, status_rank


def _first_seen(entries: Iterable[Any], status: str) -> Optional[datetime]:
    for entry in entries:
        if normalize_stored_status(entry.status) == status:
            return entry.occurred_at or entry.created_at
    return None


def build_timeline(status: str, entries: Iterable[Any]) -> List[Dict[str, Any]]:
    """Return the ordered steps ``{status, label, done, at}`` for an order.

    Canceled orders show only the placement and the cancellation.
    """
    current = normalize_stored_status(status)
    entries = sorted(
        entries, key=lambda e: (e.occurred_at or e.created_at, e.created_at)
    )

    if current == OrderStatus.CANCELED:
        return [
            {
                "status": step.value,
                "label": status_label(step),
                "done": True,
                "at": _first_seen(entries, step),
            }
            for step in (OrderStatus.PENDING, OrderStatus.CANCELED)
        ]

    rank = status_rank(current)
    return [
        {
            "status": OrderStatus(step).value,
            "label": status_label(step),
            "done": rank >= status_rank(step),
            "at": _first_seen(entries, step),
        }
        for step in PROGRESS_STATUSES
    ]
