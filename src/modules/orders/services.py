"""Order service layer (Use Cases).

Two application services:

- ``ReconciliationService`` keeps an order's status in line with the
  payment gateway and with operator decisions.  Webhook, poll and admin
  updates all funnel through ``_reconcile``: lock the row, resolve the
  transition, apply it (status + tracking in one transaction) and publish
  ``OrderStatusChanged`` once the transaction commits.
- ``OrderService`` places orders at checkout and serves the read model.

Business rules enforced:
- Payment status is always derived from the order status.
- A transition that would not change ``(status, payment_status)`` writes
  nothing (duplicate webhooks and repeated polls are no-ops).
- The gateway is queried outside the row lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.orders.constants import (
    DISCOUNT_RATE,
    DISCOUNT_THRESHOLD,
    FLAT_SHIPPING_COST,
    FREE_SHIPPING_THRESHOLD,
    TAX_RATE,
    OrderStatus,
)
from modules.orders.dtos import (
    CheckoutResultDTO,
    PaymentSessionDTO,
    ReconciliationResultDTO,
)
from modules.orders.events import OrderPlaced, OrderStatusChanged
from modules.orders.exceptions import InvalidCheckout, OrderNotFound
from modules.orders.status import normalize_gateway_status, payment_status_for
from modules.orders.transitions import Transition, resolve_transition
from modules.payments.exceptions import (
    InvalidNotificationSignature,
    PaymentGatewayNotConfigured,
)
from modules.payments.interfaces import ChargeCustomer, ChargeRequest
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.orders.dtos import (
        AdminStatusUpdateDTO,
        CheckoutDTO,
        CheckoutItemDTO,
        DashboardMetricsDTO,
        PaymentNotificationDTO,
        PaymentStatusQueryDTO,
    )
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.payments.interfaces import IPaymentGateway

logger = structlog.get_logger(__name__)

TRIGGER_WEBHOOK = "webhook"
TRIGGER_POLL = "poll"
TRIGGER_ADMIN = "admin"

CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def compute_totals(items: Iterable[CheckoutItemDTO]) -> OrderTotals:
    """Price a cart.

    Shipping is free from 250, tax is 8%, orders above 300 get 7% off.
    The charged total is rounded to a whole unit and is never below 1.
    """
    subtotal = sum((item.price * item.quantity for item in items), Decimal("0"))
    shipping = Decimal("0") if subtotal >= FREE_SHIPPING_THRESHOLD else Decimal(FLAT_SHIPPING_COST)
    tax = subtotal * Decimal(TAX_RATE)
    discount = subtotal * Decimal(DISCOUNT_RATE) if subtotal > DISCOUNT_THRESHOLD else Decimal("0")
    gross = (subtotal + shipping + tax - discount).quantize(Decimal("1"), ROUND_HALF_UP)
    return OrderTotals(
        subtotal=subtotal.quantize(CENT, ROUND_HALF_UP),
        shipping_cost=shipping.quantize(CENT),
        tax=tax.quantize(CENT, ROUND_HALF_UP),
        discount=discount.quantize(CENT, ROUND_HALF_UP),
        total=max(Decimal("1"), gross),
    )


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


class ReconciliationService:
    """Application service for order status reconciliation.

    Receives the order repository and the payment gateway via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        payment_gateway: IPaymentGateway,
        verify_signature: Optional[bool] = None,
    ) -> None:
        self._order_repo = order_repository
        self._gateway = payment_gateway
        if verify_signature is None:
            verify_signature = settings.MIDTRANS_VERIFY_SIGNATURE
        self._verify_signature = verify_signature

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle_notification(self, dto: PaymentNotificationDTO) -> ReconciliationResultDTO:
        """Apply a gateway webhook notification.

        The gateway's ``order_id`` is matched against order numbers only.
        An unknown order number is acknowledged (``updated=False``) instead
        of failing, so the gateway does not keep redelivering it.

        Raises:
            InvalidNotificationSignature: signature checking is enabled and
                the payload does not carry a valid signature.
        """
        log = logger.bind(trigger=TRIGGER_WEBHOOK, order_number=dto.order_id)

        if self._verify_signature and not self._gateway.verify_notification_signature(
            dto.model_dump()
        ):
            log.warning("reconciliation.invalid_signature")
            raise InvalidNotificationSignature("Invalid notification signature.")

        observed = normalize_gateway_status(dto.transaction_status, dto.fraud_status)
        extras = {
            "transaction_status": dto.transaction_status or "unknown",
            "mapped_status": observed.value,
            "status_code": dto.status_code or "200",
        }

        try:
            order, applied = self._reconcile(
                [dto.order_id], observed, TRIGGER_WEBHOOK, order_number_only=True
            )
        except OrderNotFound:
            log.warning("reconciliation.order_not_found")
            return ReconciliationResultDTO(
                message="Notification received",
                order_number=dto.order_id,
                status=observed.value,
                payment_status=payment_status_for(observed).value,
                updated=False,
                **extras,
            )

        return self._result("Notification received", order, applied, **extras)

    def sync_payment_status(self, dto: PaymentStatusQueryDTO) -> ReconciliationResultDTO:
        """Pull the authoritative status from the gateway and apply it.

        Raises:
            PaymentGatewayNotConfigured: gateway credentials are missing.
            OrderNotFound: no reference resolves to an order.
            PaymentGatewayError: the gateway lookup failed.
        """
        if not self._gateway.is_configured:
            raise PaymentGatewayNotConfigured("Midtrans server configuration is missing.")

        order = self._find(dto.references)
        if not order:
            logger.info(
                "reconciliation.order_not_found",
                trigger=TRIGGER_POLL,
                references=dto.references,
            )
            raise OrderNotFound("Order not found.")

        gateway_status = self._gateway.get_transaction_status(order.order_number)
        observed = normalize_gateway_status(
            gateway_status.transaction_status, gateway_status.fraud_status
        )

        order, applied = self._reconcile([str(order.pk)], observed, TRIGGER_POLL)
        message = (
            "Payment status already up-to-date"
            if applied.is_noop
            else "Payment status synchronized"
        )
        return self._result(
            message,
            order,
            applied,
            transaction_status=gateway_status.transaction_status or "unknown",
            mapped_status=observed.value,
        )

    def update_status(self, dto: AdminStatusUpdateDTO) -> ReconciliationResultDTO:
        """Set a status chosen by an operator (no gateway involved).

        Raises:
            OrderNotFound: the reference does not resolve to an order.
        """
        order, applied = self._reconcile([dto.order_reference], dto.status, TRIGGER_ADMIN)
        message = "Order already in that status" if applied.is_noop else "Order updated"
        return self._result(message, order, applied)

    # ------------------------------------------------------------------
    # Shared transition procedure
    # ------------------------------------------------------------------

    @transaction.atomic
    def _reconcile(
        self,
        references: List[str],
        observed: OrderStatus,
        trigger: str,
        order_number_only: bool = False,
    ) -> Tuple[Order, Transition]:
        order = None
        for reference in references:
            order = self._order_repo.get_for_update(
                reference, order_number_only=order_number_only
            )
            if order:
                break
        if not order:
            raise OrderNotFound(f"Order {references[0]} not found.")

        applied = resolve_transition(order.status, order.payment_status, observed)
        log = logger.bind(
            order_id=str(order.pk),
            order_number=order.order_number,
            trigger=trigger,
            current_status=applied.previous_status.value,
            observed_status=observed.value,
        )
        if applied.is_noop:
            log.info("reconciliation.noop")
            return order, applied

        order = self._order_repo.apply_transition(order, applied, timezone.now())
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.pk,
                order_number=order.order_number,
                old_status=applied.previous_status.value,
                new_status=applied.status.value,
                payment_status=applied.payment_status.value,
                trigger=trigger,
            )
        )
        event_bus.publish_on_commit(order.domain_events)
        order.clear_domain_events()

        log.info("reconciliation.applied", new_payment_status=applied.payment_status.value)
        return order, applied

    def _find(self, references: List[str]) -> Optional[Order]:
        for reference in references:
            order = self._order_repo.find_by_reference(reference)
            if order:
                return order
        return None

    @staticmethod
    def _result(
        message: str, order: Order, applied: Transition, **extras: Any
    ) -> ReconciliationResultDTO:
        return ReconciliationResultDTO(
            message=message,
            order_id=str(order.pk),
            order_number=order.order_number,
            status=applied.status.value,
            payment_status=applied.payment_status.value,
            updated=not applied.is_noop,
            **extras,
        )


# ---------------------------------------------------------------------------
# Checkout and read model
# ---------------------------------------------------------------------------


class OrderService:
    """Application service for checkout and order queries."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        payment_gateway: IPaymentGateway,
        enabled_payments: Optional[List[str]] = None,
    ) -> None:
        self._order_repo = order_repository
        self._gateway = payment_gateway
        if enabled_payments is None:
            enabled_payments = list(settings.MIDTRANS_ENABLED_PAYMENTS)
        self._enabled_payments = enabled_payments

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def place_order(self, dto: CheckoutDTO, base_url: str) -> CheckoutResultDTO:
        """Persist an order for the cart and open a payment session.

        Without gateway credentials a mock session is returned so the
        storefront keeps working in development.

        Raises:
            InvalidCheckout: customer or address details are missing.
            PaymentGatewayError: the gateway rejected the transaction.
        """
        self._validate_checkout(dto)
        totals = compute_totals(dto.items)
        order = self._create_order(dto, totals)

        log = logger.bind(order_id=str(order.pk), order_number=order.order_number)
        callback_id = quote(str(order.pk), safe="")

        if not self._gateway.is_configured:
            log.info("order.payment_session_mocked")
            return CheckoutResultDTO(
                order_id=str(order.pk),
                order_number=order.order_number,
                payment=PaymentSessionDTO(
                    token=f"mock-token-{order.order_number}",
                    redirect_url=f"/payment/pending?orderId={callback_id}",
                ),
                is_mock=True,
            )

        base_url = base_url.rstrip("/")
        session = self._gateway.create_transaction(
            ChargeRequest(
                order_id=order.order_number,
                gross_amount=int(totals.total),
                customer=ChargeCustomer(
                    full_name=dto.customer.full_name,
                    email=dto.customer.email,
                    city=dto.customer.city,
                    zip_code=dto.customer.zip_code,
                ),
                callbacks={
                    "finish": f"{base_url}/payment/success?orderId={callback_id}",
                    "pending": f"{base_url}/payment/pending?orderId={callback_id}",
                    "error": f"{base_url}/payment/error?orderId={callback_id}",
                },
                enabled_payments=self._enabled_payments,
            )
        )
        log.info("order.payment_session_created")
        return CheckoutResultDTO(
            order_id=str(order.pk),
            order_number=order.order_number,
            payment=PaymentSessionDTO(token=session.token, redirect_url=session.redirect_url),
            is_mock=False,
        )

    @transaction.atomic
    def _create_order(self, dto: CheckoutDTO, totals: OrderTotals) -> Order:
        customer = dto.customer
        order = self._order_repo.create(
            {
                "customer_name": customer.full_name.strip(),
                "customer_email": customer.email.strip(),
                "subtotal": totals.subtotal,
                "shipping_cost": totals.shipping_cost,
                "tax": totals.tax,
                "discount": totals.discount,
                "total": totals.total,
                "shipping_address": {
                    "address_line1": customer.address,
                    "city": customer.city,
                    "postal_code": customer.zip_code,
                },
                "items": [
                    {
                        "product_id": item.product_id,
                        "product_name": item.product_name,
                        "unit_price": item.price,
                        "quantity": item.quantity,
                    }
                    for item in dto.items
                ],
            }
        )
        order.add_domain_event(
            OrderPlaced(aggregate_id=order.pk, order_number=order.order_number)
        )
        event_bus.publish_on_commit(order.domain_events)
        order.clear_domain_events()
        return order

    @staticmethod
    def _validate_checkout(dto: CheckoutDTO) -> None:
        customer = dto.customer
        if not customer.full_name.strip() or "@" not in customer.email:
            raise InvalidCheckout("Missing customer details.")
        if not (customer.address.strip() and customer.city.strip() and customer.zip_code.strip()):
            raise InvalidCheckout("Missing shipping address fields.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, reference: str) -> Order:
        """Retrieve a single order by id or order number.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.find_by_reference(reference)
        if not order:
            raise OrderNotFound(f"Order {reference} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None):
        """Return orders newest first, optionally filtered."""
        return self._order_repo.list(filters)

    def dashboard_metrics(self, now: Optional[datetime] = None) -> DashboardMetricsDTO:
        """Staff dashboard figures as of *now* (defaults to the current time)."""
        return self._order_repo.dashboard_metrics(now or timezone.now())
