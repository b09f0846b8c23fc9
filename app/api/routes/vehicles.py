"""
Vehicle API routes.
"""
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import apply_sorting, count_active_orders, ensure_reference, get_tenant_entity, paginate
from app.core.database import get_db
from app.core.exceptions import DuplicateEntityException, EntityInUseException
from app.core.security import get_admin_user, get_editor_user, get_tenant_user
from app.models.audit_log import AuditAction
from app.models.driver import Driver
from app.models.order import Order
from app.models.user import User
from app.models.vehicle import FuelType, Trailer, Vehicle, VehicleStatus, VehicleType
from app.schemas.common import SortOrder
from app.schemas.vehicle import (
    VehicleCreate,
    VehicleListResponse,
    VehicleResponse,
    VehicleUpdate,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot
from app.services.webhook_service import trigger_webhook

router = APIRouter(prefix="/vehicles", tags=["vehicles"])

VEHICLE_NOT_FOUND = "Nie znaleziono pojazdu"


async def _check_registration_unique(
    db: AsyncSession,
    tenant_id: UUID,
    registration_number: str,
    exclude_id: Optional[UUID] = None,
) -> None:
    query = select(Vehicle.id).where(
        Vehicle.tenant_id == tenant_id,
        Vehicle.registration_number == registration_number,
    )
    if exclude_id is not None:
        query = query.where(Vehicle.id != exclude_id)
    if (await db.execute(query)).first():
        raise DuplicateEntityException(
            "Pojazd o tym numerze rejestracyjnym juz istnieje",
            field="registration_number",
            value=registration_number,
        )


async def _check_crew(db: AsyncSession, tenant_id: UUID, data: dict) -> None:
    if "current_driver_id" in data:
        await ensure_reference(
            db, Driver, data["current_driver_id"], tenant_id, "current_driver_id", "Kierowca nie istnieje"
        )
    if "current_trailer_id" in data:
        await ensure_reference(
            db, Trailer, data["current_trailer_id"], tenant_id, "current_trailer_id", "Naczepa nie istnieje"
        )


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None, description="Search by registration, brand, model or VIN"),
    type: Optional[VehicleType] = None,
    status_filter: Optional[VehicleStatus] = Query(None, alias="status"),
    fuel_type: Optional[FuelType] = None,
    is_active: Optional[bool] = None,
    sort_by: Literal["registration_number", "brand", "year", "created_at"] = "registration_number",
    sort_order: SortOrder = "asc",
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> VehicleListResponse:
    """Get list of vehicles with pagination."""
    query = select(Vehicle).where(Vehicle.tenant_id == current_user.tenant_id)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Vehicle.registration_number.ilike(pattern),
                Vehicle.brand.ilike(pattern),
                Vehicle.model.ilike(pattern),
                Vehicle.vin.ilike(pattern),
            )
        )
    if type:
        query = query.where(Vehicle.type == type)
    if status_filter:
        query = query.where(Vehicle.status == status_filter)
    if fuel_type:
        query = query.where(Vehicle.fuel_type == fuel_type)
    if is_active is not None:
        query = query.where(Vehicle.is_active == is_active)

    query = apply_sorting(query, Vehicle, sort_by, sort_order)
    vehicles, pagination = await paginate(db, query, page, limit)

    return VehicleListResponse(
        items=[VehicleResponse.model_validate(v) for v in vehicles],
        pagination=pagination,
    )


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> VehicleResponse:
    """Get vehicle by ID."""
    vehicle = await get_tenant_entity(db, Vehicle, vehicle_id, current_user.tenant_id, VEHICLE_NOT_FOUND)
    return VehicleResponse.model_validate(vehicle)


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    data: VehicleCreate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> VehicleResponse:
    """Create a new vehicle."""
    tenant_id = current_user.tenant_id
    await _check_registration_unique(db, tenant_id, data.registration_number)
    await _check_crew(db, tenant_id, data.model_dump())

    vehicle = Vehicle(tenant_id=tenant_id, **data.model_dump())
    db.add(vehicle)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Vehicle",
        entity_id=vehicle.id,
        changes=get_entity_changes(None, snapshot(vehicle)),
        request=request,
    )
    await db.commit()
    await db.refresh(vehicle)

    return VehicleResponse.model_validate(vehicle)


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: UUID,
    data: VehicleUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> VehicleResponse:
    """Update a vehicle."""
    tenant_id = current_user.tenant_id
    vehicle = await get_tenant_entity(db, Vehicle, vehicle_id, tenant_id, VEHICLE_NOT_FOUND)

    update_data = data.model_dump(exclude_unset=True)

    # Check registration uniqueness if changing
    if update_data.get("registration_number"):
        await _check_registration_unique(db, tenant_id, update_data["registration_number"], exclude_id=vehicle.id)
    await _check_crew(db, tenant_id, update_data)

    old = snapshot(vehicle)
    for field, value in update_data.items():
        setattr(vehicle, field, value)

    changes = get_entity_changes(old, snapshot(vehicle))
    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Vehicle",
        entity_id=vehicle.id,
        changes=changes,
        request=request,
    )
    await db.commit()
    await db.refresh(vehicle)

    background_tasks.add_task(
        trigger_webhook,
        tenant_id,
        "vehicle.updated",
        {"id": str(vehicle.id), "registration_number": vehicle.registration_number, "changes": changes or {}},
    )
    return VehicleResponse.model_validate(vehicle)


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Deactivate a vehicle that has no orders in progress."""
    vehicle = await get_tenant_entity(db, Vehicle, vehicle_id, current_user.tenant_id, VEHICLE_NOT_FOUND)

    active_orders = await count_active_orders(db, Order.vehicle_id, vehicle.id)
    if active_orders:
        raise EntityInUseException(
            f"Nie mozna usunac pojazdu z aktywnymi zleceniami ({active_orders})",
            active_count=active_orders,
        )

    vehicle.is_active = False
    vehicle.status = VehicleStatus.INACTIVE
    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Vehicle",
        entity_id=vehicle.id,
        request=request,
    )
    await db.commit()
