"""Order repository interface.

Extends ``IRepository[Order]`` with the lookups and writes the
reconciliation flow needs: reference resolution (id, then order number),
row locking, and the status transition + tracking append.

The service layer depends exclusively on this contract.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.dtos import DashboardMetricsDTO
    from modules.orders.models import Order, OrderTracking
    from modules.orders.transitions import Transition


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem snapshots and the append-only
    OrderTracking log.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items and initial tracking entry."""

    @abstractmethod
    def get_by_order_number(self, order_number: str) -> Optional[Order]:
        """Retrieve an order by its human-facing number."""

    @abstractmethod
    def find_by_reference(self, reference: str) -> Optional[Order]:
        """Resolve *reference* as an id first, then as an order number."""

    @abstractmethod
    def get_for_update(
        self, reference: str, order_number_only: bool = False
    ) -> Optional[Order]:
        """Like ``find_by_reference`` but locks the row (call inside a transaction).

        ``order_number_only`` skips the id match.
        """

    @abstractmethod
    def apply_transition(
        self, order: Order, transition: Transition, occurred_at: datetime
    ) -> Order:
        """Persist status/payment status and append one tracking entry."""

    @abstractmethod
    def append_tracking(
        self, order_id: UUID, status: str, label: str, occurred_at: datetime
    ) -> UUID:
        """Append a tracking entry, tolerating missing optional columns."""

    @abstractmethod
    def list_tracking(self, order_id: UUID) -> List[OrderTracking]:
        """Return the tracking log of an order, oldest first."""

    @abstractmethod
    def dashboard_metrics(self, now: datetime) -> DashboardMetricsDTO:
        """Aggregate the staff dashboard figures as of *now*."""
