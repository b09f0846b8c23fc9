"""
Contractor (client / carrier) API routes.
"""
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import apply_sorting, count_active_orders, get_tenant_entity, paginate
from app.core.database import get_db
from app.core.exceptions import DuplicateEntityException, EntityInUseException
from app.core.security import get_admin_user, get_editor_user, get_tenant_user
from app.models.audit_log import AuditAction
from app.models.contractor import Contractor, ContractorType
from app.models.invoice import Invoice, InvoiceStatus
from app.models.order import Order
from app.models.user import User
from app.schemas.common import SortOrder
from app.schemas.contractor import (
    ContractorCreate,
    ContractorListResponse,
    ContractorResponse,
    ContractorUpdate,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot

router = APIRouter(prefix="/contractors", tags=["contractors"])

CONTRACTOR_NOT_FOUND = "Nie znaleziono kontrahenta"

# Invoices in these states are settled or void
SETTLED_INVOICE_STATUSES = (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)


async def _check_nip_unique(
    db: AsyncSession,
    tenant_id: UUID,
    nip: Optional[str],
    exclude_id: Optional[UUID] = None,
) -> None:
    if not nip:
        return
    query = select(Contractor.id).where(Contractor.tenant_id == tenant_id, Contractor.nip == nip)
    if exclude_id is not None:
        query = query.where(Contractor.id != exclude_id)
    if (await db.execute(query)).first():
        raise DuplicateEntityException("Kontrahent o tym numerze NIP juz istnieje", field="nip", value=nip)


@router.get("", response_model=ContractorListResponse)
async def list_contractors(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None, description="Search by name, short name, NIP or city"),
    type: Optional[ContractorType] = None,
    is_active: Optional[bool] = None,
    sort_by: Literal["name", "city", "created_at"] = "name",
    sort_order: SortOrder = "asc",
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> ContractorListResponse:
    """Get list of contractors with pagination."""
    query = select(Contractor).where(Contractor.tenant_id == current_user.tenant_id)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Contractor.name.ilike(pattern),
                Contractor.short_name.ilike(pattern),
                Contractor.nip.ilike(pattern),
                Contractor.city.ilike(pattern),
            )
        )
    if type:
        # BOTH matches either side
        query = query.where(Contractor.type.in_((type, ContractorType.BOTH)))
    if is_active is not None:
        query = query.where(Contractor.is_active == is_active)

    query = apply_sorting(query, Contractor, sort_by, sort_order)
    contractors, pagination = await paginate(db, query, page, limit)

    return ContractorListResponse(
        items=[ContractorResponse.model_validate(c) for c in contractors],
        pagination=pagination,
    )


@router.get("/{contractor_id}", response_model=ContractorResponse)
async def get_contractor(
    contractor_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> ContractorResponse:
    """Get contractor by ID."""
    contractor = await get_tenant_entity(db, Contractor, contractor_id, current_user.tenant_id, CONTRACTOR_NOT_FOUND)
    return ContractorResponse.model_validate(contractor)


@router.post("", response_model=ContractorResponse, status_code=status.HTTP_201_CREATED)
async def create_contractor(
    data: ContractorCreate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> ContractorResponse:
    """Create a new contractor."""
    await _check_nip_unique(db, current_user.tenant_id, data.nip)

    contractor = Contractor(tenant_id=current_user.tenant_id, **data.model_dump())
    db.add(contractor)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Contractor",
        entity_id=contractor.id,
        changes=get_entity_changes(None, snapshot(contractor)),
        request=request,
    )
    await db.commit()
    await db.refresh(contractor)

    return ContractorResponse.model_validate(contractor)


@router.patch("/{contractor_id}", response_model=ContractorResponse)
async def update_contractor(
    contractor_id: UUID,
    data: ContractorUpdate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> ContractorResponse:
    """Update a contractor."""
    contractor = await get_tenant_entity(db, Contractor, contractor_id, current_user.tenant_id, CONTRACTOR_NOT_FOUND)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("nip"):
        await _check_nip_unique(db, current_user.tenant_id, update_data["nip"], exclude_id=contractor.id)

    old = snapshot(contractor)
    for field, value in update_data.items():
        setattr(contractor, field, value)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Contractor",
        entity_id=contractor.id,
        changes=get_entity_changes(old, snapshot(contractor)),
        request=request,
    )
    await db.commit()
    await db.refresh(contractor)

    return ContractorResponse.model_validate(contractor)


@router.delete("/{contractor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contractor(
    contractor_id: UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Deactivate a contractor without open orders or unpaid invoices."""
    contractor = await get_tenant_entity(db, Contractor, contractor_id, current_user.tenant_id, CONTRACTOR_NOT_FOUND)

    active_orders = await count_active_orders(db, Order.contractor_id, contractor.id)
    if active_orders:
        raise EntityInUseException(
            f"Nie mozna usunac kontrahenta z aktywnymi zleceniami ({active_orders})",
            active_count=active_orders,
        )

    unpaid_invoices = await db.scalar(
        select(func.count(Invoice.id)).where(
            Invoice.contractor_id == contractor.id,
            Invoice.status.notin_(SETTLED_INVOICE_STATUSES),
        )
    ) or 0
    if unpaid_invoices:
        raise EntityInUseException(
            f"Nie mozna usunac kontrahenta z nieoplaconymi fakturami ({unpaid_invoices})",
            active_count=unpaid_invoices,
        )

    contractor.is_active = False
    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Contractor",
        entity_id=contractor.id,
        request=request,
    )
    await db.commit()
