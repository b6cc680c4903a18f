"""Asynchronous tasks for the orders module."""

from __future__ import annotations

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.dtos import PaymentStatusQueryDTO
from modules.orders.exceptions import OrderNotFound, OrderPersistenceError
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import ReconciliationService
from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateway import MidtransGateway

logger = structlog.get_logger(__name__)


@shared_task(name="orders.reconcile_pending_payments")
def reconcile_pending_payments() -> dict:
    """Poll the gateway for pending orders whose webhook may have been lost.

    Only orders older than ``PAYMENT_RECONCILE_MIN_AGE_MINUTES`` and younger
    than ``PAYMENT_RECONCILE_MAX_AGE_HOURS`` are checked.  A failure on one
    order is logged and counted; the run carries on with the next one.
    """
    gateway = MidtransGateway()
    if not gateway.is_configured:
        logger.warning("reconciliation.batch_skipped", reason="gateway_not_configured")
        return {"checked": 0, "updated": 0, "failed": 0, "skipped": True}

    now = timezone.now()
    order_numbers = list(
        Order.objects.filter(
            status=OrderStatus.PENDING,
            created_at__lte=now
            - timedelta(minutes=settings.PAYMENT_RECONCILE_MIN_AGE_MINUTES),
            created_at__gte=now - timedelta(hours=settings.PAYMENT_RECONCILE_MAX_AGE_HOURS),
        )
        .order_by("created_at")
        .values_list("order_number", flat=True)
    )

    service = ReconciliationService(
        order_repository=OrderDjangoRepository(), payment_gateway=gateway
    )
    updated = failed = 0
    for order_number in order_numbers:
        try:
            result = service.sync_payment_status(
                PaymentStatusQueryDTO(references=[order_number])
            )
        except (OrderNotFound, OrderPersistenceError, PaymentGatewayError) as exc:
            failed += 1
            logger.warning(
                "reconciliation.batch_order_failed",
                order_number=order_number,
                error=str(exc),
            )
            continue
        if result.updated:
            updated += 1

    summary = {
        "checked": len(order_numbers),
        "updated": updated,
        "failed": failed,
        "skipped": False,
    }
    logger.info("reconciliation.batch_completed", **summary)
    return summary
