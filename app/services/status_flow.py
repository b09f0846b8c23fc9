"""
Order status workflow.

The allowed transitions are a declarative table; every status change
(dispatcher or driver app) goes through ``validate_transition``.
"""
from datetime import datetime, timezone
from typing import Iterable

from app.core.exceptions import InvalidStatusTransitionException
from app.models.order import OrderStatus

S = OrderStatus

STATUS_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    S.NEW: (S.ACCEPTED, S.PLANNED, S.CANCELLED),
    S.PLANNED: (S.ASSIGNED, S.CANCELLED),
    S.ASSIGNED: (S.CONFIRMED, S.PLANNED, S.CANCELLED),
    S.CONFIRMED: (S.LOADING, S.ASSIGNED, S.CANCELLED, S.PROBLEM),
    S.ACCEPTED: (S.LOADING, S.CANCELLED, S.PROBLEM),
    S.LOADING: (S.IN_TRANSIT, S.CONFIRMED, S.PROBLEM),
    S.IN_TRANSIT: (S.UNLOADING, S.LOADING, S.PROBLEM),
    S.UNLOADING: (S.DELIVERED, S.IN_TRANSIT, S.PROBLEM),
    S.DELIVERED: (S.COMPLETED, S.PROBLEM),
    S.COMPLETED: (S.PROBLEM,),
    S.CANCELLED: (S.PLANNED,),
    S.PROBLEM: (
        S.PLANNED,
        S.ASSIGNED,
        S.CONFIRMED,
        S.LOADING,
        S.IN_TRANSIT,
        S.UNLOADING,
        S.COMPLETED,
        S.CANCELLED,
    ),
}

ORDER_STATUS_LABELS: dict[OrderStatus, str] = {
    S.NEW: "Nowe",
    S.PLANNED: "Zaplanowane",
    S.ASSIGNED: "Przydzielone",
    S.CONFIRMED: "Potwierdzone",
    S.ACCEPTED: "Przyjete",
    S.LOADING: "Zaladunek",
    S.IN_TRANSIT: "W trasie",
    S.UNLOADING: "Rozladunek",
    S.DELIVERED: "Dostarczone",
    S.COMPLETED: "Zakonczone",
    S.CANCELLED: "Anulowane",
    S.PROBLEM: "Problem",
}

# Statuses a driver may report from the mobile app
DRIVER_ALLOWED_STATUSES: tuple[OrderStatus, ...] = (
    S.ACCEPTED,
    S.LOADING,
    S.IN_TRANSIT,
    S.UNLOADING,
    S.DELIVERED,
    S.COMPLETED,
)


def get_status_label(status: OrderStatus | str) -> str:
    try:
        return ORDER_STATUS_LABELS[OrderStatus(status)]
    except ValueError:
        return str(status)


def get_allowed_transitions(current: OrderStatus) -> tuple[OrderStatus, ...]:
    return STATUS_TRANSITIONS.get(current, ())


def is_transition_allowed(current: OrderStatus, target: OrderStatus) -> bool:
    """Staying in the same status is always allowed."""
    if current == target:
        return True
    return target in get_allowed_transitions(current)


def validate_transition(current: OrderStatus, target: OrderStatus) -> None:
    """
    Raise ``InvalidStatusTransitionException`` when ``current -> target``
    is not in the transition table.
    """
    if not is_transition_allowed(current, target):
        raise InvalidStatusTransitionException(
            current=OrderStatus(current).value,
            target=OrderStatus(target).value,
            allowed=_values(get_allowed_transitions(current)),
        )


def _values(statuses: Iterable[OrderStatus]) -> list[str]:
    return [s.value for s in statuses]


def apply_status_change(order, target: OrderStatus) -> OrderStatus:
    """
    Move ``order`` to ``target`` and stamp delivery/completion times.

    Returns the previous status.
    """
    previous = order.status
    validate_transition(previous, target)
    order.status = target
    if target == OrderStatus.DELIVERED and order.delivered_at is None:
        order.delivered_at = datetime.now(timezone.utc)
    if target == OrderStatus.COMPLETED and order.completed_at is None:
        order.completed_at = datetime.now(timezone.utc)
    return previous
