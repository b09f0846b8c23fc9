"""
Document registry API routes (metadata records and file upload).
"""
from datetime import date
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import apply_sorting, ensure_reference, get_tenant_entity, paginate
from app.core.database import get_db
from app.core.rate_limit import RateLimits, limiter
from app.core.security import get_admin_user, get_editor_user, get_tenant_user
from app.models.audit_log import AuditAction
from app.models.document import Document, DocumentType
from app.models.driver import Driver
from app.models.order import Order
from app.models.user import User
from app.models.vehicle import Trailer, Vehicle
from app.schemas.common import SortOrder
from app.schemas.document import (
    DocumentCreate,
    DocumentEntityType,
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdate,
    UploadResponse,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot
from app.services.expiry import warning_cutoff
from app.services.file_storage import document_dir, save_upload

router = APIRouter(prefix="/documents", tags=["documents"])

DOCUMENT_NOT_FOUND = "Nie znaleziono dokumentu"

ENTITY_LINKS = {
    "vehicle": (Document.vehicle_id, Vehicle, "Pojazd nie istnieje"),
    "trailer": (Document.trailer_id, Trailer, "Naczepa nie istnieje"),
    "driver": (Document.driver_id, Driver, "Kierowca nie istnieje"),
    "order": (Document.order_id, Order, "Zlecenie nie istnieje"),
}


async def _check_links(db: AsyncSession, tenant_id: UUID, data: dict) -> None:
    for column, model, message in ENTITY_LINKS.values():
        field = column.key
        if field in data:
            await ensure_reference(db, model, data[field], tenant_id, field, message)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None, description="Search by name or description"),
    type: Optional[DocumentType] = None,
    entity_type: Optional[DocumentEntityType] = None,
    vehicle_id: Optional[UUID] = None,
    trailer_id: Optional[UUID] = None,
    driver_id: Optional[UUID] = None,
    order_id: Optional[UUID] = None,
    expiring_soon: bool = Query(False, description="Expiry within the warning window"),
    expired: bool = False,
    sort_by: Literal["name", "expiry_date", "type", "created_at"] = "created_at",
    sort_order: SortOrder = "desc",
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> DocumentListResponse:
    """Get list of documents with pagination."""
    query = select(Document).where(Document.tenant_id == current_user.tenant_id)

    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Document.name.ilike(pattern), Document.description.ilike(pattern)))
    if type:
        query = query.where(Document.type == type)
    if entity_type == "company":
        query = query.where(
            and_(*(column.is_(None) for column, _, _ in ENTITY_LINKS.values()))
        )
    elif entity_type:
        query = query.where(ENTITY_LINKS[entity_type][0].is_not(None))
    if vehicle_id:
        query = query.where(Document.vehicle_id == vehicle_id)
    if trailer_id:
        query = query.where(Document.trailer_id == trailer_id)
    if driver_id:
        query = query.where(Document.driver_id == driver_id)
    if order_id:
        query = query.where(Document.order_id == order_id)

    today = date.today()
    if expiring_soon:
        query = query.where(Document.expiry_date >= today, Document.expiry_date <= warning_cutoff(today))
    if expired:
        query = query.where(Document.expiry_date < today)

    query = apply_sorting(query, Document, sort_by, sort_order)
    documents, pagination = await paginate(db, query, page, limit)

    return DocumentListResponse(
        items=[DocumentResponse.model_validate(d) for d in documents],
        pagination=pagination,
    )


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.UPLOAD)
async def upload_document_file(
    request: Request,
    file: UploadFile = File(...),
    entity_type: Optional[DocumentEntityType] = Form(None),
    entity_id: Optional[UUID] = Form(None),
    current_user: User = Depends(get_editor_user),
) -> UploadResponse:
    """
    Store a document file (JPG, PNG, WebP or PDF).

    The returned URL goes into ``file_url`` of a document record.
    """
    stored = await save_upload(file, document_dir(current_user.tenant_id, entity_type, entity_id))
    return UploadResponse(
        url=stored.url,
        file_name=stored.file_name,
        file_size=stored.file_size,
        mime_type=stored.mime_type,
    )


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    document = await get_tenant_entity(db, Document, document_id, current_user.tenant_id, DOCUMENT_NOT_FOUND)
    return DocumentResponse.model_validate(document)


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    data: DocumentCreate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    """Register a document (file already uploaded)."""
    tenant_id = current_user.tenant_id
    await _check_links(db, tenant_id, data.model_dump())

    document = Document(tenant_id=tenant_id, uploaded_by_id=current_user.id, **data.model_dump())
    db.add(document)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Document",
        entity_id=document.id,
        changes=get_entity_changes(None, snapshot(document)),
        request=request,
    )
    await db.commit()
    await db.refresh(document)

    return DocumentResponse.model_validate(document)


@router.patch("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: UUID,
    data: DocumentUpdate,
    request: Request,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    tenant_id = current_user.tenant_id
    document = await get_tenant_entity(db, Document, document_id, tenant_id, DOCUMENT_NOT_FOUND)

    update_data = data.model_dump(exclude_unset=True)
    await _check_links(db, tenant_id, update_data)

    old = snapshot(document)
    for field, value in update_data.items():
        setattr(document, field, value)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Document",
        entity_id=document.id,
        changes=get_entity_changes(old, snapshot(document)),
        request=request,
    )
    await db.commit()
    await db.refresh(document)

    return DocumentResponse.model_validate(document)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    document = await get_tenant_entity(db, Document, document_id, current_user.tenant_id, DOCUMENT_NOT_FOUND)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Document",
        entity_id=document.id,
        changes=get_entity_changes(snapshot(document), None),
        request=request,
    )
    await db.delete(document)
    await db.commit()
