"""
Transport order API routes.
"""
import re
from datetime import date, timedelta
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.responses import Response
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import apply_sorting, ensure_reference, get_tenant_entity, model_to_dict, paginate
from app.core.database import get_db
from app.core.exceptions import DuplicateEntityException, NotFoundException, ValidationException
from app.core.security import get_admin_user, get_editor_user, get_tenant_user
from app.models.audit_log import AuditAction
from app.models.contractor import Contractor
from app.models.driver import Driver
from app.models.order import Order, OrderStatus, OrderWaypoint
from app.models.tenant import Tenant
from app.models.user import User
from app.models.vehicle import Trailer, Vehicle
from app.schemas.common import SortOrder
from app.schemas.order import (
    AssignmentCreate,
    OrderCreate,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderUpdate,
    WaypointCreate,
)
from app.services.assignment_service import add_assignment, recalculate_allocations
from app.services.audit_service import get_entity_changes, log_audit, snapshot
from app.services.pdf_export import pdf_exporter
from app.services.status_flow import apply_status_change
from app.services.webhook_service import trigger_webhook

router = APIRouter(prefix="/orders", tags=["orders"])

ORDER_NOT_FOUND = "Nie znaleziono zlecenia"
COPY_SUFFIX = "-KOPIA"

# Fields never carried over to a duplicated order
NOT_COPIED = {
    "id",
    "tenant_id",
    "order_number",
    "status",
    "invoice_id",
    "pod_signature_url",
    "pod_recipient_name",
    "pod_signed_at",
    "last_latitude",
    "last_longitude",
    "last_location_at",
    "delivered_at",
    "completed_at",
    "created_by_id",
    "created_at",
    "updated_at",
}


async def load_order(db: AsyncSession, order_id: UUID, tenant_id: UUID) -> Order:
    """Order with fresh waypoints and assignments, or 404."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id, Order.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundException(ORDER_NOT_FOUND)
    return order


async def _check_number_unique(
    db: AsyncSession,
    tenant_id: UUID,
    order_number: str,
    exclude_id: Optional[UUID] = None,
) -> None:
    query = select(Order.id).where(Order.tenant_id == tenant_id, Order.order_number == order_number)
    if exclude_id is not None:
        query = query.where(Order.id != exclude_id)
    if (await db.execute(query)).first():
        raise DuplicateEntityException(
            "Zlecenie o podanym numerze juz istnieje",
            field="order_number",
            value=order_number,
        )


async def _check_references(db: AsyncSession, tenant_id: UUID, data: dict) -> None:
    checks = (
        ("contractor_id", Contractor, "Kontrahent nie istnieje"),
        ("subcontractor_id", Contractor, "Podwykonawca nie istnieje"),
        ("driver_id", Driver, "Kierowca nie istnieje"),
        ("vehicle_id", Vehicle, "Pojazd nie istnieje"),
        ("trailer_id", Trailer, "Naczepa nie istnieje"),
    )
    for field, model, message in checks:
        if field in data:
            await ensure_reference(db, model, data[field], tenant_id, field, message)


def _build_waypoints(waypoints: list[WaypointCreate]) -> list[OrderWaypoint]:
    items = [
        OrderWaypoint(
            sequence=wp.sequence if wp.sequence is not None else index,
            **wp.model_dump(exclude={"sequence"}),
        )
        for index, wp in enumerate(waypoints)
    ]
    return sorted(items, key=lambda wp: wp.sequence)


def _webhook_data(order: Order, **extra) -> dict:
    data = {
        "id": str(order.id),
        "order_number": order.order_number,
        "status": order.status.value,
    }
    data.update(extra)
    return data


async def _next_copy_number(db: AsyncSession, tenant_id: UUID, order_number: str) -> str:
    base = f"{order_number}{COPY_SUFFIX}"
    result = await db.execute(
        select(Order.order_number).where(
            Order.tenant_id == tenant_id,
            Order.order_number.like(f"{base}%"),
        )
    )
    taken = set(result.scalars().all())
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None, description="Search by number, route or cargo"),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    driver_id: Optional[UUID] = None,
    vehicle_id: Optional[UUID] = None,
    contractor_id: Optional[UUID] = None,
    date_from: Optional[date] = Query(None, description="Loading date from"),
    date_to: Optional[date] = Query(None, description="Loading date to"),
    sort_by: Literal["loading_date", "unloading_date", "order_number", "price_net", "created_at"] = "loading_date",
    sort_order: SortOrder = "desc",
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Get list of orders with pagination."""
    query = select(Order).where(Order.tenant_id == current_user.tenant_id)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Order.order_number.ilike(pattern),
                Order.external_number.ilike(pattern),
                Order.origin.ilike(pattern),
                Order.origin_city.ilike(pattern),
                Order.destination.ilike(pattern),
                Order.destination_city.ilike(pattern),
                Order.cargo_description.ilike(pattern),
            )
        )
    if status_filter:
        query = query.where(Order.status == status_filter)
    if driver_id:
        query = query.where(Order.driver_id == driver_id)
    if vehicle_id:
        query = query.where(Order.vehicle_id == vehicle_id)
    if contractor_id:
        query = query.where(Order.contractor_id == contractor_id)
    if date_from:
        query = query.where(Order.loading_date >= date_from)
    if date_to:
        query = query.where(Order.loading_date <= date_to)

    query = apply_sorting(query, Order, sort_by, sort_order)
    orders, pagination = await paginate(db, query, page, limit)

    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        pagination=pagination,
    )


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> OrderDetailResponse:
    """Get order with waypoints and assignments."""
    order = await load_order(db, order_id, current_user.tenant_id)
    return OrderDetailResponse.model_validate(order)


@router.post("", response_model=OrderDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    data: OrderCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> OrderDetailResponse:
    """
    Create an order with its route and initial crew.

    Without explicit ``assignments`` the ``driver_id`` (if any) becomes
    the initial, primary assignment with the full revenue share.
    """
    tenant_id = current_user.tenant_id
    await _check_number_unique(db, tenant_id, data.order_number)
    await _check_references(db, tenant_id, data.model_dump(include={
        "contractor_id", "subcontractor_id", "driver_id", "vehicle_id", "trailer_id",
    }))

    order = Order(
        tenant_id=tenant_id,
        created_by_id=current_user.id,
        **data.model_dump(exclude={"waypoints", "assignments"}),
    )
    order.waypoints = _build_waypoints(data.waypoints)
    order.assignments = []
    db.add(order)

    assignments = data.assignments
    if not assignments and data.driver_id:
        assignments = [
            AssignmentCreate(
                driver_id=data.driver_id,
                vehicle_id=data.vehicle_id,
                trailer_id=data.trailer_id,
                revenue_share=1.0,
                is_primary=True,
            )
        ]
    for assignment_data in assignments:
        await add_assignment(db, order, assignment_data, created_by_id=current_user.id)

    await db.flush()
    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Order",
        entity_id=order.id,
        changes=get_entity_changes(None, snapshot(order)),
        request=request,
    )
    await db.commit()

    order = await load_order(db, order.id, tenant_id)
    background_tasks.add_task(trigger_webhook, tenant_id, "order.created", _webhook_data(order))
    return OrderDetailResponse.model_validate(order)


@router.patch("/{order_id}", response_model=OrderDetailResponse)
async def update_order(
    order_id: UUID,
    data: OrderUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> OrderDetailResponse:
    """Update an order. Given waypoints replace the whole route."""
    tenant_id = current_user.tenant_id
    order = await load_order(db, order_id, tenant_id)

    update_data = data.model_dump(exclude_unset=True)
    waypoints = update_data.pop("waypoints", None)
    new_status = update_data.pop("status", None)

    if update_data.get("order_number"):
        await _check_number_unique(db, tenant_id, update_data["order_number"], exclude_id=order.id)
    await _check_references(db, tenant_id, update_data)

    loading = update_data.get("loading_date") or order.loading_date
    unloading = update_data.get("unloading_date") or order.unloading_date
    if unloading < loading:
        raise ValidationException("Data rozladunku nie moze byc wczesniejsza niz data zaladunku")

    old = snapshot(order)
    old_status = order.status
    if new_status is not None:
        apply_status_change(order, new_status)

    for field, value in update_data.items():
        setattr(order, field, value)
    if waypoints is not None:
        order.waypoints = _build_waypoints(data.waypoints)
    if "price_net" in update_data:
        recalculate_allocations(order)

    changes = get_entity_changes(old, snapshot(order))
    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Order",
        entity_id=order.id,
        changes=changes,
        request=request,
    )
    await db.commit()

    order = await load_order(db, order.id, tenant_id)
    background_tasks.add_task(
        trigger_webhook, tenant_id, "order.updated", _webhook_data(order, changes=changes or {})
    )
    if order.status != old_status:
        background_tasks.add_task(
            trigger_webhook,
            tenant_id,
            "order.status_changed",
            _webhook_data(order, previous_status=old_status.value),
        )
    return OrderDetailResponse.model_validate(order)


@router.patch("/{order_id}/status", response_model=OrderDetailResponse)
async def change_order_status(
    order_id: UUID,
    body: OrderStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> OrderDetailResponse:
    """Move the order through the status workflow."""
    tenant_id = current_user.tenant_id
    order = await load_order(db, order_id, tenant_id)

    previous = apply_status_change(order, body.status)
    log_audit(
        db,
        user=current_user,
        action=AuditAction.STATUS_CHANGE,
        entity_type="Order",
        entity_id=order.id,
        changes={"status": {"old": previous.value, "new": body.status.value}},
        request=request,
    )
    await db.commit()

    order = await load_order(db, order.id, tenant_id)
    if previous != order.status:
        background_tasks.add_task(
            trigger_webhook,
            tenant_id,
            "order.status_changed",
            _webhook_data(order, previous_status=previous.value),
        )
    return OrderDetailResponse.model_validate(order)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete an order that has not been invoiced."""
    order = await load_order(db, order_id, current_user.tenant_id)
    if order.invoice_id is not None:
        raise ValidationException("Nie mozna usunac zlecenia powiazanego z faktura")

    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Order",
        entity_id=order.id,
        changes=get_entity_changes(snapshot(order), None),
        request=request,
    )
    await db.delete(order)
    await db.commit()


@router.post("/{order_id}/duplicate", response_model=OrderDetailResponse, status_code=status.HTTP_201_CREATED)
async def duplicate_order(
    order_id: UUID,
    request: Request,
    days_offset: Optional[int] = Query(None, description="Shift loading date to today + N days"),
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> OrderDetailResponse:
    """
    Copy an order as a new NEW order.

    Route, cargo, parties and prices are copied; crew assignments, invoice
    link and delivery data are not.
    """
    tenant_id = current_user.tenant_id
    source = await load_order(db, order_id, tenant_id)

    fields = {k: v for k, v in model_to_dict(source).items() if k not in NOT_COPIED}
    if days_offset is not None:
        duration = source.unloading_date - source.loading_date
        fields["loading_date"] = date.today() + timedelta(days=days_offset)
        fields["unloading_date"] = fields["loading_date"] + duration

    copy = Order(
        tenant_id=tenant_id,
        order_number=await _next_copy_number(db, tenant_id, source.order_number),
        status=OrderStatus.NEW,
        created_by_id=current_user.id,
        **fields,
    )
    copy.waypoints = [
        OrderWaypoint(
            sequence=wp.sequence,
            type=wp.type,
            address=wp.address,
            city=wp.city,
            country=wp.country,
            scheduled_date=wp.scheduled_date,
            scheduled_time=wp.scheduled_time,
            notes=wp.notes,
        )
        for wp in source.waypoints
    ]
    copy.assignments = []
    db.add(copy)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Order",
        entity_id=copy.id,
        changes=get_entity_changes(None, snapshot(copy)),
        metadata={"duplicated_from": source.id},
        request=request,
    )
    await db.commit()

    copy = await load_order(db, copy.id, tenant_id)
    return OrderDetailResponse.model_validate(copy)


@router.get("/{order_id}/cmr")
async def get_order_cmr(
    order_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download the CMR consignment note as PDF."""
    tenant_id = current_user.tenant_id
    order = await load_order(db, order_id, tenant_id)

    async def related(model, entity_id):
        if entity_id is None:
            return None
        return model_to_dict(await get_tenant_entity(db, model, entity_id, tenant_id))

    pdf = pdf_exporter.export_cmr(
        model_to_dict(order),
        sender=await related(Contractor, order.contractor_id),
        carrier=model_to_dict(await db.get(Tenant, tenant_id)),
        driver=await related(Driver, order.driver_id),
        vehicle=await related(Vehicle, order.vehicle_id),
        trailer=await related(Trailer, order.trailer_id),
    )
    filename = "CMR-" + re.sub(r"[^A-Za-z0-9_-]+", "_", order.order_number) + ".pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
