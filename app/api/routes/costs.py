"""
Operating cost API routes.
"""
from datetime import date
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import apply_sorting, ensure_reference, get_tenant_entity, paginate
from app.core.database import get_db
from app.core.security import get_admin_user, get_editor_user, get_tenant_user
from app.models.audit_log import AuditAction
from app.models.cost import Cost, CostCategory
from app.models.driver import Driver
from app.models.order import Order
from app.models.user import User
from app.models.vehicle import Vehicle
from app.schemas.common import SortOrder
from app.schemas.cost import CostCreate, CostListResponse, CostResponse, CostSummary, CostUpdate
from app.services.audit_service import get_entity_changes, log_audit, snapshot
from app.services.money import round_money, sum_money

router = APIRouter(prefix="/costs", tags=["costs"])

COST_NOT_FOUND = "Nie znaleziono kosztu"


async def _check_links(db: AsyncSession, tenant_id: UUID, data: dict) -> None:
    checks = (
        ("vehicle_id", Vehicle, "Pojazd nie istnieje"),
        ("driver_id", Driver, "Kierowca nie istnieje"),
        ("order_id", Order, "Zlecenie nie istnieje"),
    )
    for field, model, message in checks:
        if field in data:
            await ensure_reference(db, model, data[field], tenant_id, field, message)


@router.get("", response_model=CostListResponse)
async def list_costs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None, description="Search in description and notes"),
    category: Optional[CostCategory] = None,
    vehicle_id: Optional[UUID] = None,
    driver_id: Optional[UUID] = None,
    order_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: Literal["date", "amount", "category", "created_at"] = "date",
    sort_order: SortOrder = "desc",
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> CostListResponse:
    """
    Get list of costs with pagination.

    The summary covers every cost matching the filters, not just the page.
    """
    conditions = [Cost.tenant_id == current_user.tenant_id]
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Cost.description.ilike(pattern), Cost.notes.ilike(pattern)))
    if category:
        conditions.append(Cost.category == category)
    if vehicle_id:
        conditions.append(Cost.vehicle_id == vehicle_id)
    if driver_id:
        conditions.append(Cost.driver_id == driver_id)
    if order_id:
        conditions.append(Cost.order_id == order_id)
    if start_date:
        conditions.append(Cost.date >= start_date)
    if end_date:
        conditions.append(Cost.date <= end_date)

    query = apply_sorting(select(Cost).where(*conditions), Cost, sort_by, sort_order)
    costs, pagination = await paginate(db, query, page, limit)

    totals = await db.execute(
        select(Cost.category, func.sum(Cost.amount)).where(*conditions).group_by(Cost.category)
    )
    category_totals = {cat.value: round_money(amount) for cat, amount in totals.all()}

    return CostListResponse(
        items=[CostResponse.model_validate(c) for c in costs],
        pagination=pagination,
        summary=CostSummary(
            category_totals=category_totals,
            total=sum_money(category_totals.values()),
        ),
    )


@router.get("/{cost_id}", response_model=CostResponse)
async def get_cost(
    cost_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> CostResponse:
    cost = await get_tenant_entity(db, Cost, cost_id, current_user.tenant_id, COST_NOT_FOUND)
    return CostResponse.model_validate(cost)


@router.post("", response_model=CostResponse, status_code=status.HTTP_201_CREATED)
async def create_cost(
    data: CostCreate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> CostResponse:
    """Record a cost."""
    tenant_id = current_user.tenant_id
    await _check_links(db, tenant_id, data.model_dump())

    cost = Cost(tenant_id=tenant_id, **data.model_dump())
    db.add(cost)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Cost",
        entity_id=cost.id,
        changes=get_entity_changes(None, snapshot(cost)),
        request=request,
    )
    await db.commit()
    await db.refresh(cost)

    return CostResponse.model_validate(cost)


@router.patch("/{cost_id}", response_model=CostResponse)
async def update_cost(
    cost_id: UUID,
    data: CostUpdate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> CostResponse:
    tenant_id = current_user.tenant_id
    cost = await get_tenant_entity(db, Cost, cost_id, tenant_id, COST_NOT_FOUND)

    update_data = data.model_dump(exclude_unset=True)
    await _check_links(db, tenant_id, update_data)

    old = snapshot(cost)
    for field, value in update_data.items():
        setattr(cost, field, value)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Cost",
        entity_id=cost.id,
        changes=get_entity_changes(old, snapshot(cost)),
        request=request,
    )
    await db.commit()
    await db.refresh(cost)

    return CostResponse.model_validate(cost)


@router.delete("/{cost_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cost(
    cost_id: UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    cost = await get_tenant_entity(db, Cost, cost_id, current_user.tenant_id, COST_NOT_FOUND)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Cost",
        entity_id=cost.id,
        changes=get_entity_changes(snapshot(cost), None),
        request=request,
    )
    await db.delete(cost)
    await db.commit()
