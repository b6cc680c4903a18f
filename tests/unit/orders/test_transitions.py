"""Unit tests for the transition resolver."""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.transitions import TransitionKind, resolve_transition

pytestmark = pytest.mark.unit


def test_same_status_and_payment_is_noop():
    transition = resolve_transition("paid", "success", OrderStatus.PAID)

    assert transition.is_noop
    assert transition.kind is TransitionKind.NOOP
    assert transition.status == OrderStatus.PAID
    assert transition.payment_status == PaymentStatus.SUCCESS


def test_new_status_is_applied_with_derived_payment_and_label():
    transition = resolve_transition("pending", "pending", OrderStatus.PAID)

    assert transition.kind is TransitionKind.APPLY
    assert transition.previous_status == OrderStatus.PENDING
    assert transition.status == OrderStatus.PAID
    assert transition.payment_status == PaymentStatus.SUCCESS
    assert transition.label == "Payment Confirmed"


def test_stale_payment_status_is_repaired():
    transition = resolve_transition("paid", "pending", OrderStatus.PAID)

    assert not transition.is_noop
    assert transition.payment_status == PaymentStatus.SUCCESS


def test_missing_payment_status_counts_as_pending():
    assert resolve_transition("pending", None, OrderStatus.PENDING).is_noop
    assert resolve_transition("pending", "", OrderStatus.PENDING).is_noop


def test_storage_spelling_of_current_status_is_understood():
    assert resolve_transition("cancelled", "failed", OrderStatus.CANCELED).is_noop


def test_backward_move_is_accepted():
    """The most recent signal wins, even if it ranks behind the current status."""
    transition = resolve_transition("paid", "success", OrderStatus.PENDING)

    assert transition.kind is TransitionKind.APPLY
    assert transition.status == OrderStatus.PENDING
    assert transition.payment_status == PaymentStatus.PENDING
    assert transition.label == "Order Placed"


def test_canceled_can_be_reentered_from_any_state():
    transition = resolve_transition("canceled", "failed", OrderStatus.PAID)
    assert transition.status == OrderStatus.PAID


def test_label_depends_only_on_target():
    from_pending = resolve_transition("pending", "pending", OrderStatus.SHIPPED)
    from_paid = resolve_transition("paid", "success", OrderStatus.SHIPPED)
    assert from_pending.label == from_paid.label == "Shipped"
