"""
Order crew assignments and revenue-share allocation.

Open assignments (no end date) hold a share of the order revenue; the
shares of open, active assignments may not exceed 100%.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidReferenceException, RevenueShareExceededException, ValidationException
from app.models.driver import Driver
from app.models.order import Order, OrderAssignment
from app.models.vehicle import Trailer, Vehicle
from app.schemas.order import AssignmentCreate
from app.services.money import round_money, sum_money, to_decimal

logger = logging.getLogger(__name__)

# Floating point slack when summing shares like 0.33 + 0.33 + 0.34
SHARE_TOLERANCE = 0.001


def calculate_allocated_amount(price_net: Optional[Decimal], revenue_share: float) -> Optional[Decimal]:
    """Part of the order price allocated to a crew, rounded to grosze."""
    if not price_net:
        return None
    return round_money(to_decimal(price_net) * to_decimal(revenue_share))


def open_share_total(
    assignments: Iterable[OrderAssignment],
    exclude_id: Optional[UUID] = None,
) -> float:
    """Sum of shares held by active assignments without an end date."""
    return sum(
        a.revenue_share
        for a in assignments
        if a.is_active and a.end_date is None and a.id != exclude_id
    )


def check_revenue_share(
    assignments: Iterable[OrderAssignment],
    new_share: float,
    exclude_id: Optional[UUID] = None,
) -> None:
    current = open_share_total(assignments, exclude_id=exclude_id)
    if current + new_share > 1 + SHARE_TOLERANCE:
        raise RevenueShareExceededException(current_total=current, requested=new_share)


def validate_assignment_dates(order: Order, start_date: date, end_date: Optional[date]) -> None:
    """Assignment period must fit inside the order schedule."""
    if start_date < order.loading_date:
        raise ValidationException("Data rozpoczecia nie moze byc wczesniejsza niz data zaladunku")
    if end_date is None:
        return
    if end_date > order.unloading_date:
        raise ValidationException("Data zakonczenia nie moze byc pozniejsza niz data rozladunku")
    if end_date < start_date:
        raise ValidationException("Data zakonczenia nie moze byc wczesniejsza niz data rozpoczecia")


def check_driver_not_assigned(assignments: Iterable[OrderAssignment], driver_id: UUID) -> None:
    for a in assignments:
        if a.driver_id == driver_id and a.is_active and a.end_date is None:
            raise ValidationException(
                "Kierowca ma juz aktywne przypisanie do tego zlecenia. "
                "Zakoncz poprzednie przypisanie przed dodaniem nowego."
            )


def make_primary(order: Order, assignment: OrderAssignment) -> None:
    """
    Mark ``assignment`` as the primary crew of ``order``.

    Clears the flag on the other assignments and copies driver, vehicle
    and trailer onto the order itself.
    """
    for other in order.assignments:
        if other is not assignment and other.is_primary:
            other.is_primary = False
    assignment.is_primary = True
    order.driver_id = assignment.driver_id
    order.vehicle_id = assignment.vehicle_id
    order.trailer_id = assignment.trailer_id


def build_summary(assignments: list[OrderAssignment], order_price: Optional[Decimal]) -> dict:
    open_assignments = [a for a in assignments if a.is_active and a.end_date is None]
    total_share = sum(a.revenue_share for a in open_assignments)
    total_allocated = sum_money(a.allocated_amount for a in assignments)
    return {
        "total": len(assignments),
        "active": len(open_assignments),
        "completed": len([a for a in assignments if a.end_date is not None]),
        "total_revenue_share": round(total_share, 2),
        "total_allocated": total_allocated,
        "order_price": order_price,
        "remaining_share": round(1 - total_share, 2),
    }


def recalculate_allocations(order: Order) -> None:
    """Price change on the order re-splits the amounts of all assignments."""
    for a in order.assignments:
        a.allocated_amount = calculate_allocated_amount(order.price_net, a.revenue_share)
    logger.debug(f"Recalculated {len(order.assignments)} allocations for order {order.order_number}")


async def _active_reference(db: AsyncSession, model, entity_id: Optional[UUID], tenant_id: UUID, field: str, message: str):
    if entity_id is None:
        return None
    entity = (
        await db.execute(
            select(model).where(
                model.id == entity_id,
                model.tenant_id == tenant_id,
                model.is_active.is_(True),
            )
        )
    ).scalar_one_or_none()
    if entity is None:
        raise InvalidReferenceException(message, field=field, value=entity_id)
    return entity


async def add_assignment(
    db: AsyncSession,
    order: Order,
    data: AssignmentCreate,
    created_by_id: Optional[UUID] = None,
) -> OrderAssignment:
    """
    Validate and attach a new assignment to ``order``.

    The first assignment of an order, or one flagged ``is_primary``,
    becomes the primary crew.
    """
    tenant_id = order.tenant_id
    await _active_reference(db, Driver, data.driver_id, tenant_id, "driver_id", "Kierowca nie istnieje lub jest nieaktywny")
    await _active_reference(db, Vehicle, data.vehicle_id, tenant_id, "vehicle_id", "Pojazd nie istnieje lub jest nieaktywny")
    await _active_reference(db, Trailer, data.trailer_id, tenant_id, "trailer_id", "Naczepa nie istnieje lub jest nieaktywna")

    start_date = data.start_date or order.loading_date
    validate_assignment_dates(order, start_date, data.end_date)
    check_driver_not_assigned(order.assignments, data.driver_id)
    if data.end_date is None:
        check_revenue_share(order.assignments, data.revenue_share)

    is_first = not order.assignments
    assignment = OrderAssignment(
        tenant_id=tenant_id,
        driver_id=data.driver_id,
        vehicle_id=data.vehicle_id,
        trailer_id=data.trailer_id,
        start_date=start_date,
        end_date=data.end_date,
        revenue_share=data.revenue_share,
        allocated_amount=calculate_allocated_amount(order.price_net, data.revenue_share),
        distance_km=data.distance_km,
        reason=data.reason,
        reason_note=data.reason_note,
        is_primary=False,
        is_active=True,
        created_by_id=created_by_id,
    )
    order.assignments.append(assignment)
    if is_first or data.is_primary:
        make_primary(order, assignment)
    logger.info(f"Driver {data.driver_id} assigned to order {order.order_number} (share {data.revenue_share})")
    return assignment


def promote_next_primary(order: Order) -> Optional[OrderAssignment]:
    """
    After the primary assignment is removed, hand the role to the oldest
    open assignment, or clear the crew on the order when none is left.
    """
    candidates = [a for a in order.assignments if a.is_active and a.end_date is None]
    if not candidates:
        order.driver_id = None
        order.vehicle_id = None
        order.trailer_id = None
        return None
    successor = min(candidates, key=lambda a: a.created_at)
    make_primary(order, successor)
    return successor
