"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.

``apply_transition`` is the single write path for order status: the status
update and its tracking entry run in one transaction, so a failed append
never leaves a status change without its audit record.

Tracking appends tolerate schema drift: when the table lacks one of the
optional columns (``label``, ``message``, ``occurred_at``) the row is
re-inserted without it.  Core columns are never dropped.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
import uuid6
from django.core.exceptions import ValidationError
from django.db import DatabaseError, connection, models, transaction
from django.utils import timezone

from modules.orders.constants import STATUS_LABELS, OrderStatus, PaymentStatus
from modules.orders.dtos import DashboardMetricsDTO
from modules.orders.exceptions import (
    OrderNotFound,
    OrderPersistenceError,
    TrackingAppendFailed,
)
from modules.orders.metrics import build_dashboard_metrics
from modules.orders.models import Order, OrderItem, OrderTracking
from modules.orders.repositories.interfaces import IOrderRepository
from modules.orders.transitions import Transition

logger = structlog.get_logger(__name__)

OPTIONAL_TRACKING_COLUMNS: tuple[str, ...] = ("label", "message", "occurred_at")

_MISSING_COLUMN_PATTERNS = (
    # PostgreSQL
    re.compile(r'column "?(?P<column>\w+)"?(?: of relation "?\w+"?)? does not exist', re.I),
    # SQLite
    re.compile(r"has no column named (?P<column>\w+)", re.I),
    re.compile(r"no such column: (?:\w+\.)?(?P<column>\w+)", re.I),
    # MySQL
    re.compile(r"unknown column '(?:\w+\.)?(?P<column>\w+)'", re.I),
)


def missing_column(error: Exception) -> Optional[str]:
    """Return the column named by a "column does not exist" error, if any."""
    message = str(error)
    for pattern in _MISSING_COLUMN_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group("column").lower()
    return None


def _is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except (TypeError, ValueError):
        return False
    return True


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items and the initial tracking entry.

        ``data`` keys: ``customer_name``, ``customer_email``, ``subtotal``,
        ``shipping_cost``, ``tax``, ``discount``, ``total``,
        ``shipping_address``, ``items`` (list of dicts with ``product_id``,
        ``product_name``, ``unit_price``, ``quantity``) and optionally
        ``order_number`` and ``payment_method``.
        """
        order = Order(
            order_number=data.get("order_number", ""),
            customer_name=data.get("customer_name", ""),
            customer_email=data.get("customer_email", ""),
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            subtotal=data.get("subtotal", 0),
            shipping_cost=data.get("shipping_cost", 0),
            tax=data.get("tax", 0),
            discount=data.get("discount", 0),
            total=data.get("total", 0),
            shipping_address=data.get("shipping_address", {}),
            payment_method=data.get("payment_method", "midtrans"),
        )
        order.save()

        items = data.get("items", [])
        for item_data in items:
            OrderItem(
                order=order,
                product_id=item_data.get("product_id") or "",
                product_name=item_data["product_name"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            ).save()

        self.append_tracking(
            order.id,
            OrderStatus.PENDING,
            STATUS_LABELS[OrderStatus.PENDING],
            order.created_at,
        )

        logger.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _base_queryset(self) -> models.QuerySet:
        return Order.objects.prefetch_related("items", "tracking")

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded items and tracking.

        Returns ``None`` for non-existent or malformed IDs.
        """
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None
        except DatabaseError as exc:
            raise OrderPersistenceError(str(exc)) from exc

    def get_by_order_number(self, order_number: str) -> Optional[Order]:
        try:
            return self._base_queryset().filter(order_number=order_number).first()
        except DatabaseError as exc:
            raise OrderPersistenceError(str(exc)) from exc

    def find_by_reference(self, reference: str) -> Optional[Order]:
        if _is_uuid(reference):
            order = self.get_by_id(reference)
            if order:
                return order
        return self.get_by_order_number(reference)

    def get_for_update(
        self, reference: str, order_number_only: bool = False
    ) -> Optional[Order]:
        """Resolve *reference* with a row-level lock (SELECT FOR UPDATE).

        With ``order_number_only`` the reference is matched against
        ``order_number`` alone, never against the internal id.
        Must be called inside ``transaction.atomic()``.
        """
        try:
            locked = Order.objects.select_for_update()
            if not order_number_only and _is_uuid(reference):
                order = locked.filter(id=reference).first()
                if order:
                    return order
            return locked.filter(order_number=reference).first()
        except DatabaseError as exc:
            raise OrderPersistenceError(str(exc)) from exc

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List orders newest first, with item counts and eager-loaded relations."""
        queryset = self._base_queryset().annotate(items_count=models.Count("items"))
        if filters:
            queryset = queryset.filter(**filters)
        return queryset.order_by("-created_at", "-id")

    def dashboard_metrics(self, now: datetime) -> DashboardMetricsDTO:
        try:
            return build_dashboard_metrics(Order.objects.all(), now)
        except DatabaseError as exc:
            raise OrderPersistenceError(str(exc)) from exc

    def list_tracking(self, order_id: UUID) -> List[OrderTracking]:
        return list(
            OrderTracking.objects.filter(order_id=order_id).order_by(
                "occurred_at", "created_at"
            )
        )

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @transaction.atomic
    def apply_transition(
        self, order: Order, transition: Transition, occurred_at: datetime
    ) -> Order:
        """Write ``status`` + ``payment_status`` + ``updated_at`` and one tracking entry."""
        log = logger.bind(
            order_id=str(order.id),
            old_status=transition.previous_status.value,
            new_status=transition.status.value,
        )
        try:
            updated = Order.objects.filter(pk=order.pk).update(
                status=transition.status,
                payment_status=transition.payment_status,
                updated_at=occurred_at,
            )
        except DatabaseError as exc:
            log.error("order.status_update_failed", error=str(exc))
            raise OrderPersistenceError(str(exc)) from exc

        if not updated:
            raise OrderNotFound(f"Order {order.id} not found.")

        self.append_tracking(order.pk, transition.status, transition.label, occurred_at)

        order.status = transition.status
        order.payment_status = transition.payment_status
        order.updated_at = occurred_at
        log.info("order.status_applied", payment_status=transition.payment_status.value)
        return order

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def append_tracking(
        self, order_id: UUID, status: str, label: str, occurred_at: datetime
    ) -> UUID:
        try:
            with transaction.atomic():
                entry = OrderTracking.objects.create(
                    order_id=order_id,
                    status=status,
                    label=label,
                    message=label,
                    occurred_at=occurred_at,
                )
        except DatabaseError as exc:
            column = missing_column(exc)
            if column not in OPTIONAL_TRACKING_COLUMNS:
                logger.error(
                    "order.tracking_append_failed",
                    order_id=str(order_id),
                    error=str(exc),
                )
                raise TrackingAppendFailed(str(exc)) from exc
            return self._append_tracking_reduced(
                order_id, status, label, occurred_at, dropped={column}
            )

        logger.info("order.tracking_appended", order_id=str(order_id), status=str(status))
        return entry.id

    def _append_tracking_reduced(
        self,
        order_id: UUID,
        status: str,
        label: str,
        occurred_at: datetime,
        dropped: set[str],
    ) -> UUID:
        entry_id = uuid6.uuid7()
        now = timezone.now()
        values: Dict[str, Any] = {
            "id": entry_id,
            "order": order_id,
            "status": status,
            "label": label,
            "message": label,
            "occurred_at": occurred_at,
            "created_at": now,
            "updated_at": now,
        }

        while True:
            logger.warning(
                "order.tracking_schema_fallback",
                order_id=str(order_id),
                dropped_columns=sorted(dropped),
            )
            row = {name: value for name, value in values.items() if name not in dropped}
            try:
                with transaction.atomic():
                    self._insert_tracking_row(row)
            except DatabaseError as exc:
                column = missing_column(exc)
                if column not in OPTIONAL_TRACKING_COLUMNS or column in dropped:
                    logger.error(
                        "order.tracking_append_failed",
                        order_id=str(order_id),
                        error=str(exc),
                    )
                    raise TrackingAppendFailed(str(exc)) from exc
                dropped.add(column)
                continue
            return entry_id

    @staticmethod
    def _insert_tracking_row(row: Dict[str, Any]) -> None:
        """Insert a tracking row naming only the given fields."""
        opts = OrderTracking._meta
        fields = [opts.get_field(name) for name in row]
        columns = ", ".join(connection.ops.quote_name(f.column) for f in fields)
        placeholders = ", ".join(["%s"] * len(fields))
        params = [
            field.get_db_prep_save(row[field.name], connection) for field in fields
        ]
        sql = (
            f"INSERT INTO {connection.ops.quote_name(opts.db_table)} "
            f"({columns}) VALUES ({placeholders})"
        )
        with connection.cursor() as cursor:
            cursor.execute(sql, params)
