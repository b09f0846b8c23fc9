"""
Tests for the order status workflow.
"""
from types import SimpleNamespace

import pytest

from app.core.exceptions import InvalidStatusTransitionException
from app.models.order import OrderStatus
from app.services.status_flow import (
    DRIVER_ALLOWED_STATUSES,
    STATUS_TRANSITIONS,
    apply_status_change,
    get_allowed_transitions,
    get_status_label,
    is_transition_allowed,
    validate_transition,
)


def make_order(status: OrderStatus) -> SimpleNamespace:
    return SimpleNamespace(status=status, delivered_at=None, completed_at=None)


class TestTransitionTable:

    def test_every_status_has_entry(self):
        assert set(STATUS_TRANSITIONS) == set(OrderStatus)

    def test_targets_are_statuses(self):
        for targets in STATUS_TRANSITIONS.values():
            assert all(isinstance(t, OrderStatus) for t in targets)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.NEW, OrderStatus.ACCEPTED),
            (OrderStatus.NEW, OrderStatus.PLANNED),
            (OrderStatus.ACCEPTED, OrderStatus.LOADING),
            (OrderStatus.LOADING, OrderStatus.IN_TRANSIT),
            (OrderStatus.IN_TRANSIT, OrderStatus.UNLOADING),
            (OrderStatus.UNLOADING, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.COMPLETED),
            (OrderStatus.CANCELLED, OrderStatus.PLANNED),
            (OrderStatus.PROBLEM, OrderStatus.IN_TRANSIT),
        ],
    )
    def test_allowed(self, current, target):
        assert is_transition_allowed(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.NEW, OrderStatus.COMPLETED),
            (OrderStatus.NEW, OrderStatus.DELIVERED),
            (OrderStatus.COMPLETED, OrderStatus.NEW),
            (OrderStatus.CANCELLED, OrderStatus.COMPLETED),
            (OrderStatus.DELIVERED, OrderStatus.LOADING),
        ],
    )
    def test_rejected(self, current, target):
        assert not is_transition_allowed(current, target)

    def test_same_status_is_allowed(self):
        for status in OrderStatus:
            assert is_transition_allowed(status, status)

    def test_completed_can_only_go_to_problem(self):
        assert get_allowed_transitions(OrderStatus.COMPLETED) == (OrderStatus.PROBLEM,)


class TestValidateTransition:

    def test_raises_with_allowed_list(self):
        with pytest.raises(InvalidStatusTransitionException) as exc_info:
            validate_transition(OrderStatus.NEW, OrderStatus.COMPLETED)

        details = exc_info.value.details
        assert details["current"] == "NEW"
        assert details["target"] == "COMPLETED"
        assert "ACCEPTED" in details["allowed"]

    def test_accepts_plain_strings(self):
        validate_transition(OrderStatus("NEW"), OrderStatus("PLANNED"))


class TestApplyStatusChange:

    def test_returns_previous(self):
        order = make_order(OrderStatus.NEW)
        assert apply_status_change(order, OrderStatus.ACCEPTED) == OrderStatus.NEW
        assert order.status == OrderStatus.ACCEPTED

    def test_stamps_delivered_and_completed(self):
        order = make_order(OrderStatus.UNLOADING)
        apply_status_change(order, OrderStatus.DELIVERED)
        assert order.delivered_at is not None
        assert order.completed_at is None

        apply_status_change(order, OrderStatus.COMPLETED)
        assert order.completed_at is not None

    def test_keeps_first_delivery_time(self):
        order = make_order(OrderStatus.DELIVERED)
        first = order.delivered_at = object()
        apply_status_change(order, OrderStatus.DELIVERED)
        assert order.delivered_at is first

    def test_invalid_change_leaves_order_untouched(self):
        order = make_order(OrderStatus.NEW)
        with pytest.raises(InvalidStatusTransitionException):
            apply_status_change(order, OrderStatus.COMPLETED)
        assert order.status == OrderStatus.NEW


class TestLabels:

    def test_polish_labels(self):
        assert get_status_label(OrderStatus.IN_TRANSIT) == "W trasie"
        assert get_status_label("COMPLETED") == "Zakonczone"

    def test_unknown_status_falls_back(self):
        assert get_status_label("UNKNOWN") == "UNKNOWN"

    def test_driver_statuses_exclude_planning(self):
        assert OrderStatus.PLANNED not in DRIVER_ALLOWED_STATUSES
        assert OrderStatus.CANCELLED not in DRIVER_ALLOWED_STATUSES
        assert OrderStatus.DELIVERED in DRIVER_ALLOWED_STATUSES
