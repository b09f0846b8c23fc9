"""
Driver API routes.
"""
from datetime import date
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
from app.models.driver import Driver, DriverStatus, EmploymentType
from app.models.order import Order
from app.models.user import User
from app.models.vehicle import Vehicle
from app.schemas.common import SortOrder
from app.schemas.driver import (
    DriverCreate,
    DriverDetailResponse,
    DriverListResponse,
    DriverResponse,
    DriverUpdate,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot
from app.services.expiry import driver_expiry_warnings, warning_cutoff
from app.services.webhook_service import trigger_webhook

router = APIRouter(prefix="/drivers", tags=["drivers"])

DRIVER_NOT_FOUND = "Nie znaleziono kierowcy"


async def _check_pesel_unique(db: AsyncSession, tenant_id: UUID, pesel: Optional[str], exclude_id=None) -> None:
    if not pesel:
        return
    query = select(Driver.id).where(Driver.tenant_id == tenant_id, Driver.pesel == pesel)
    if exclude_id is not None:
        query = query.where(Driver.id != exclude_id)
    if (await db.execute(query)).first():
        raise DuplicateEntityException("Kierowca o tym numerze PESEL juz istnieje", field="pesel", value=pesel)


async def _detail(db: AsyncSession, driver: Driver) -> DriverDetailResponse:
    registration = None
    if driver.current_vehicle_id:
        registration = await db.scalar(
            select(Vehicle.registration_number).where(Vehicle.id == driver.current_vehicle_id)
        )
    response = DriverDetailResponse.model_validate(driver)
    response.current_vehicle_registration = registration
    response.expiry_warnings = driver_expiry_warnings(driver)
    return response


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None, description="Search by name, email, phone or licence number"),
    status_filter: Optional[DriverStatus] = Query(None, alias="status"),
    employment_type: Optional[EmploymentType] = None,
    is_active: Optional[bool] = None,
    has_expiring_documents: Optional[bool] = Query(None, description="Licence, ADR or medical expiring soon"),
    sort_by: Literal["last_name", "first_name", "created_at", "employment_date"] = "last_name",
    sort_order: SortOrder = "asc",
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> DriverListResponse:
    """Get list of drivers with pagination."""
    query = select(Driver).where(Driver.tenant_id == current_user.tenant_id)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Driver.first_name.ilike(pattern),
                Driver.last_name.ilike(pattern),
                Driver.email.ilike(pattern),
                Driver.phone.ilike(pattern),
                Driver.license_number.ilike(pattern),
            )
        )
    if status_filter:
        query = query.where(Driver.status == status_filter)
    if employment_type:
        query = query.where(Driver.employment_type == employment_type)
    if is_active is not None:
        query = query.where(Driver.is_active == is_active)
    if has_expiring_documents:
        cutoff = warning_cutoff()
        query = query.where(
            or_(
                Driver.license_expiry <= cutoff,
                Driver.adr_expiry <= cutoff,
                Driver.medical_expiry <= cutoff,
            )
        )

    query = apply_sorting(query, Driver, sort_by, sort_order)
    drivers, pagination = await paginate(db, query, page, limit)

    return DriverListResponse(
        items=[DriverResponse.model_validate(d) for d in drivers],
        pagination=pagination,
    )


@router.get("/{driver_id}", response_model=DriverDetailResponse)
async def get_driver(
    driver_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> DriverDetailResponse:
    """Get driver by ID with expiry warnings."""
    driver = await get_tenant_entity(db, Driver, driver_id, current_user.tenant_id, DRIVER_NOT_FOUND)
    return await _detail(db, driver)


@router.post("", response_model=DriverDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    data: DriverCreate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> DriverDetailResponse:
    """Create a new driver."""
    tenant_id = current_user.tenant_id
    await _check_pesel_unique(db, tenant_id, data.pesel)
    await ensure_reference(db, Vehicle, data.current_vehicle_id, tenant_id, "current_vehicle_id", "Pojazd nie istnieje")

    driver = Driver(tenant_id=tenant_id, **data.model_dump())
    db.add(driver)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Driver",
        entity_id=driver.id,
        changes=get_entity_changes(None, snapshot(driver)),
        request=request,
    )
    await db.commit()
    await db.refresh(driver)

    return await _detail(db, driver)


@router.patch("/{driver_id}", response_model=DriverDetailResponse)
async def update_driver(
    driver_id: UUID,
    data: DriverUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> DriverDetailResponse:
    """Update a driver."""
    tenant_id = current_user.tenant_id
    driver = await get_tenant_entity(db, Driver, driver_id, tenant_id, DRIVER_NOT_FOUND)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("pesel"):
        await _check_pesel_unique(db, tenant_id, update_data["pesel"], exclude_id=driver.id)
    if "current_vehicle_id" in update_data:
        await ensure_reference(
            db, Vehicle, update_data["current_vehicle_id"], tenant_id, "current_vehicle_id", "Pojazd nie istnieje"
        )

    old = snapshot(driver)
    for field, value in update_data.items():
        setattr(driver, field, value)

    changes = get_entity_changes(old, snapshot(driver))
    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Driver",
        entity_id=driver.id,
        changes=changes,
        request=request,
    )
    await db.commit()
    await db.refresh(driver)

    background_tasks.add_task(
        trigger_webhook,
        tenant_id,
        "driver.updated",
        {"id": str(driver.id), "name": driver.full_name, "changes": changes or {}},
    )
    return await _detail(db, driver)


@router.delete("/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_driver(
    driver_id: UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Deactivate a driver.

    Drivers with orders still in progress cannot be deactivated.
    """
    driver = await get_tenant_entity(db, Driver, driver_id, current_user.tenant_id, DRIVER_NOT_FOUND)

    active_orders = await count_active_orders(db, Order.driver_id, driver.id)
    if active_orders:
        raise EntityInUseException(
            f"Nie mozna usunac kierowcy z aktywnymi zleceniami ({active_orders})",
            active_count=active_orders,
        )

    old = snapshot(driver)
    driver.is_active = False
    driver.status = DriverStatus.TERMINATED
    driver.termination_date = date.today()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Driver",
        entity_id=driver.id,
        changes=get_entity_changes(old, snapshot(driver)),
        request=request,
    )
    await db.commit()
