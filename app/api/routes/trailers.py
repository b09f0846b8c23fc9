"""
Trailer API routes.
"""
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import apply_sorting, count_active_orders, get_tenant_entity, paginate
from app.core.database import get_db
from app.core.exceptions import DuplicateEntityException, EntityInUseException
from app.core.security import get_admin_user, get_editor_user, get_tenant_user
from app.models.audit_log import AuditAction
from app.models.order import Order
from app.models.user import User
from app.models.vehicle import Trailer, TrailerType, VehicleStatus
from app.schemas.common import SortOrder
from app.schemas.vehicle import (
    TrailerCreate,
    TrailerListResponse,
    TrailerResponse,
    TrailerUpdate,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot

router = APIRouter(prefix="/trailers", tags=["trailers"])

TRAILER_NOT_FOUND = "Nie znaleziono naczepy"


async def _check_registration_unique(
    db: AsyncSession,
    tenant_id: UUID,
    registration_number: str,
    exclude_id: Optional[UUID] = None,
) -> None:
    query = select(Trailer.id).where(
        Trailer.tenant_id == tenant_id,
        Trailer.registration_number == registration_number,
    )
    if exclude_id is not None:
        query = query.where(Trailer.id != exclude_id)
    if (await db.execute(query)).first():
        raise DuplicateEntityException(
            "Naczepa o tym numerze rejestracyjnym juz istnieje",
            field="registration_number",
            value=registration_number,
        )


@router.get("", response_model=TrailerListResponse)
async def list_trailers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None, description="Search by registration or brand"),
    type: Optional[TrailerType] = None,
    status_filter: Optional[VehicleStatus] = Query(None, alias="status"),
    is_active: Optional[bool] = None,
    sort_by: Literal["registration_number", "brand", "year", "created_at"] = "registration_number",
    sort_order: SortOrder = "asc",
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> TrailerListResponse:
    """Get list of trailers with pagination."""
    query = select(Trailer).where(Trailer.tenant_id == current_user.tenant_id)

    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Trailer.registration_number.ilike(pattern), Trailer.brand.ilike(pattern)))
    if type:
        query = query.where(Trailer.type == type)
    if status_filter:
        query = query.where(Trailer.status == status_filter)
    if is_active is not None:
        query = query.where(Trailer.is_active == is_active)

    query = apply_sorting(query, Trailer, sort_by, sort_order)
    trailers, pagination = await paginate(db, query, page, limit)

    return TrailerListResponse(
        items=[TrailerResponse.model_validate(t) for t in trailers],
        pagination=pagination,
    )


@router.get("/{trailer_id}", response_model=TrailerResponse)
async def get_trailer(
    trailer_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> TrailerResponse:
    """Get trailer by ID."""
    trailer = await get_tenant_entity(db, Trailer, trailer_id, current_user.tenant_id, TRAILER_NOT_FOUND)
    return TrailerResponse.model_validate(trailer)


@router.post("", response_model=TrailerResponse, status_code=status.HTTP_201_CREATED)
async def create_trailer(
    data: TrailerCreate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> TrailerResponse:
    """Create a new trailer."""
    await _check_registration_unique(db, current_user.tenant_id, data.registration_number)

    trailer = Trailer(tenant_id=current_user.tenant_id, **data.model_dump())
    db.add(trailer)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Trailer",
        entity_id=trailer.id,
        changes=get_entity_changes(None, snapshot(trailer)),
        request=request,
    )
    await db.commit()
    await db.refresh(trailer)

    return TrailerResponse.model_validate(trailer)


@router.patch("/{trailer_id}", response_model=TrailerResponse)
async def update_trailer(
    trailer_id: UUID,
    data: TrailerUpdate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> TrailerResponse:
    """Update a trailer."""
    trailer = await get_tenant_entity(db, Trailer, trailer_id, current_user.tenant_id, TRAILER_NOT_FOUND)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("registration_number"):
        await _check_registration_unique(
            db, current_user.tenant_id, update_data["registration_number"], exclude_id=trailer.id
        )

    old = snapshot(trailer)
    for field, value in update_data.items():
        setattr(trailer, field, value)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Trailer",
        entity_id=trailer.id,
        changes=get_entity_changes(old, snapshot(trailer)),
        request=request,
    )
    await db.commit()
    await db.refresh(trailer)

    return TrailerResponse.model_validate(trailer)


@router.delete("/{trailer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trailer(
    trailer_id: UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Deactivate a trailer that has no orders in progress."""
    trailer = await get_tenant_entity(db, Trailer, trailer_id, current_user.tenant_id, TRAILER_NOT_FOUND)

    active_orders = await count_active_orders(db, Order.trailer_id, trailer.id)
    if active_orders:
        raise EntityInUseException(
            f"Nie mozna usunac naczepy z aktywnymi zleceniami ({active_orders})",
            active_count=active_orders,
        )

    trailer.is_active = False
    trailer.status = VehicleStatus.INACTIVE
    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Trailer",
        entity_id=trailer.id,
        request=request,
    )
    await db.commit()
