"""
Order crew assignment API routes.
"""
from datetime import date
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_reference
from app.api.routes.orders import load_order
from app.core.database import get_db
from app.core.exceptions import NotFoundException
from app.core.security import get_editor_user, get_tenant_user
from app.models.audit_log import AuditAction
from app.models.order import Order, OrderAssignment
from app.models.user import User
from app.models.vehicle import Trailer, Vehicle
from app.schemas.order import (
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentSummary,
    AssignmentUpdate,
)
from app.services.assignment_service import (
    add_assignment,
    build_summary,
    calculate_allocated_amount,
    check_revenue_share,
    make_primary,
    promote_next_primary,
    validate_assignment_dates,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot
from app.services.webhook_service import trigger_webhook

router = APIRouter(prefix="/orders/{order_id}/assignments", tags=["assignments"])

ASSIGNMENT_NOT_FOUND = "Przypisanie nie zostalo znalezione"


def _find_assignment(order: Order, assignment_id: UUID) -> OrderAssignment:
    for assignment in order.assignments:
        if assignment.id == assignment_id:
            return assignment
    raise NotFoundException(ASSIGNMENT_NOT_FOUND)


def _webhook_data(order: Order, assignment: OrderAssignment, **extra) -> dict:
    data = {
        "assignment_id": str(assignment.id),
        "order_id": str(order.id),
        "order_number": order.order_number,
        "driver_id": str(assignment.driver_id),
        "revenue_share": assignment.revenue_share,
    }
    data.update(extra)
    return data


@router.get("", response_model=AssignmentListResponse)
async def list_assignments(
    order_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> AssignmentListResponse:
    """Assignments of an order with the revenue-share summary."""
    order = await load_order(db, order_id, current_user.tenant_id)
    return AssignmentListResponse(
        items=[AssignmentResponse.model_validate(a) for a in order.assignments],
        summary=AssignmentSummary(**build_summary(order.assignments, order.price_net)),
    )


@router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    order_id: UUID,
    data: AssignmentCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> AssignmentResponse:
    """Assign a driver (and optionally vehicle/trailer) to the order."""
    tenant_id = current_user.tenant_id
    order = await load_order(db, order_id, tenant_id)

    assignment = await add_assignment(db, order, data, created_by_id=current_user.id)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="OrderAssignment",
        entity_id=assignment.id,
        changes=get_entity_changes(None, snapshot(assignment)),
        metadata={"order_id": order.id, "order_number": order.order_number},
        request=request,
    )
    await db.commit()
    await db.refresh(assignment)

    background_tasks.add_task(
        trigger_webhook,
        tenant_id,
        "order.assignment_created",
        _webhook_data(order, assignment, is_primary=assignment.is_primary),
    )
    return AssignmentResponse.model_validate(assignment)


@router.patch("/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(
    order_id: UUID,
    assignment_id: UUID,
    data: AssignmentUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> AssignmentResponse:
    """
    Update an assignment, or close it with ``{"action": "end"}``.

    Closing releases the revenue share for a replacement crew.
    """
    tenant_id = current_user.tenant_id
    order = await load_order(db, order_id, tenant_id)
    assignment = _find_assignment(order, assignment_id)
    old = snapshot(assignment)

    update_data = data.model_dump(exclude_unset=True)
    action = update_data.pop("action", None)

    if action == "end":
        end_date = data.end_date or date.today()
        validate_assignment_dates(order, assignment.start_date, end_date)
        assignment.end_date = end_date
        if data.reason is not None:
            assignment.reason = data.reason
        if data.reason_note is not None:
            assignment.reason_note = data.reason_note
    else:
        if "vehicle_id" in update_data:
            await ensure_reference(
                db, Vehicle, update_data["vehicle_id"], tenant_id, "vehicle_id",
                "Pojazd nie istnieje lub jest nieaktywny", active_only=True,
            )
        if "trailer_id" in update_data:
            await ensure_reference(
                db, Trailer, update_data["trailer_id"], tenant_id, "trailer_id",
                "Naczepa nie istnieje lub jest nieaktywna", active_only=True,
            )

        start_date = update_data.get("start_date") or assignment.start_date
        end_date = update_data["end_date"] if "end_date" in update_data else assignment.end_date
        validate_assignment_dates(order, start_date, end_date)

        share = update_data.get("revenue_share") or assignment.revenue_share
        is_active = update_data.get("is_active", assignment.is_active)
        if is_active and end_date is None:
            check_revenue_share(order.assignments, share, exclude_id=assignment.id)

        is_primary = update_data.pop("is_primary", None)
        for field, value in update_data.items():
            setattr(assignment, field, value)
        assignment.allocated_amount = calculate_allocated_amount(order.price_net, assignment.revenue_share)

        if is_primary:
            make_primary(order, assignment)
        elif assignment.is_primary:
            # Keep the order crew in sync with its primary assignment
            make_primary(order, assignment)

    changes = get_entity_changes(old, snapshot(assignment))
    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="OrderAssignment",
        entity_id=assignment.id,
        changes=changes,
        metadata={"order_id": order.id, "action": action or "update"},
        request=request,
    )
    await db.commit()
    await db.refresh(assignment)

    background_tasks.add_task(
        trigger_webhook,
        tenant_id,
        "order.assignment_updated",
        _webhook_data(order, assignment, action="ended" if action == "end" else "updated"),
    )
    return AssignmentResponse.model_validate(assignment)


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    order_id: UUID,
    assignment_id: UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Remove an assignment; the next open one becomes primary."""
    tenant_id = current_user.tenant_id
    order = await load_order(db, order_id, tenant_id)
    assignment = _find_assignment(order, assignment_id)
    payload = _webhook_data(order, assignment)

    was_primary = assignment.is_primary
    order.assignments.remove(assignment)
    if was_primary:
        promote_next_primary(order)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="OrderAssignment",
        entity_id=assignment_id,
        metadata={"order_id": order.id, "order_number": order.order_number, "driver_id": assignment.driver_id},
        request=request,
    )
    await db.commit()

    background_tasks.add_task(trigger_webhook, tenant_id, "order.assignment_deleted", payload)
