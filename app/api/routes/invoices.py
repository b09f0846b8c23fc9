"""
Invoice API routes.
"""
import re
from datetime import date
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.responses import Response
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import apply_sorting, ensure_reference, get_tenant_entity, model_to_dict, paginate
from app.core.database import get_db
from app.core.exceptions import InvalidReferenceException, InvoiceLockedException, ValidationException
from app.core.security import get_admin_user, get_editor_user, get_tenant_user
from app.models.audit_log import AuditAction
from app.models.contractor import Contractor
from app.models.invoice import Invoice, InvoiceStatus
from app.models.order import Order
from app.models.tenant import Tenant
from app.models.user import User
from app.schemas.common import SortOrder
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceDetailResponse,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceUpdate,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot
from app.services.invoice_service import apply_totals, build_items, default_due_date, generate_invoice_number
from app.services.pdf_export import pdf_exporter
from app.services.webhook_service import trigger_webhook

router = APIRouter(prefix="/invoices", tags=["invoices"])

INVOICE_NOT_FOUND = "Nie znaleziono faktury"

# Fields an issued invoice still accepts
PAYMENT_FIELDS = {"status", "is_paid", "paid_date", "paid_amount", "payment_method"}


async def _linked_order_ids(db: AsyncSession, invoice_id: UUID) -> list[UUID]:
    result = await db.execute(select(Order.id).where(Order.invoice_id == invoice_id))
    return list(result.scalars().all())


async def _detail(db: AsyncSession, invoice: Invoice) -> InvoiceDetailResponse:
    response = InvoiceDetailResponse.model_validate(invoice)
    response.order_ids = await _linked_order_ids(db, invoice.id)
    return response


async def _link_orders(db: AsyncSession, invoice: Invoice, order_ids: list[UUID]) -> None:
    """Point the given tenant orders at ``invoice``, releasing previous links."""
    await db.execute(update(Order).where(Order.invoice_id == invoice.id).values(invoice_id=None))
    if not order_ids:
        return
    result = await db.execute(
        select(Order).where(Order.id.in_(order_ids), Order.tenant_id == invoice.tenant_id)
    )
    orders = result.scalars().all()
    if len(orders) != len(set(order_ids)):
        raise InvalidReferenceException("Zlecenie nie istnieje", field="order_ids")
    for order in orders:
        if order.invoice_id is not None and order.invoice_id != invoice.id:
            raise ValidationException(f"Zlecenie {order.order_number} jest juz zafakturowane")
        order.invoice_id = invoice.id


def _mark_paid(invoice: Invoice, paid_date: Optional[date], paid_amount: Optional[Decimal]) -> None:
    invoice.status = InvoiceStatus.PAID
    invoice.paid_date = paid_date or invoice.paid_date or date.today()
    invoice.paid_amount = paid_amount if paid_amount is not None else invoice.gross_amount


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: Optional[str] = Query(None, description="Search by invoice number"),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    contractor_id: Optional[UUID] = None,
    date_from: Optional[date] = Query(None, description="Issue date from"),
    date_to: Optional[date] = Query(None, description="Issue date to"),
    is_paid: Optional[bool] = None,
    sort_by: Literal["issue_date", "due_date", "invoice_number", "gross_amount", "created_at"] = "issue_date",
    sort_order: SortOrder = "desc",
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> InvoiceListResponse:
    """Get list of invoices with pagination."""
    query = select(Invoice).where(Invoice.tenant_id == current_user.tenant_id)

    if search:
        query = query.where(Invoice.invoice_number.ilike(f"%{search}%"))
    if status_filter:
        query = query.where(Invoice.status == status_filter)
    if contractor_id:
        query = query.where(Invoice.contractor_id == contractor_id)
    if date_from:
        query = query.where(Invoice.issue_date >= date_from)
    if date_to:
        query = query.where(Invoice.issue_date <= date_to)
    if is_paid is not None:
        query = query.where(
            Invoice.status == InvoiceStatus.PAID if is_paid else Invoice.status != InvoiceStatus.PAID
        )

    query = apply_sorting(query, Invoice, sort_by, sort_order)
    invoices, pagination = await paginate(db, query, page, limit)

    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(i) for i in invoices],
        pagination=pagination,
    )


@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def get_invoice(
    invoice_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetailResponse:
    """Get invoice with items and linked orders."""
    invoice = await get_tenant_entity(db, Invoice, invoice_id, current_user.tenant_id, INVOICE_NOT_FOUND)
    return await _detail(db, invoice)


@router.post("", response_model=InvoiceDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    data: InvoiceCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetailResponse:
    """
    Create a draft invoice.

    The number is the next one in the month of ``issue_date``; amounts
    are computed from the items.
    """
    tenant_id = current_user.tenant_id
    contractor = await ensure_reference(
        db, Contractor, data.contractor_id, tenant_id, "contractor_id", "Kontrahent nie istnieje"
    )

    bank_account = data.bank_account
    if not bank_account:
        tenant = await db.get(Tenant, tenant_id)
        bank_account = tenant.bank_account if tenant else None

    invoice = Invoice(
        tenant_id=tenant_id,
        invoice_number=await generate_invoice_number(db, tenant_id, data.issue_date),
        status=InvoiceStatus.DRAFT,
        bank_account=bank_account,
        due_date=data.due_date or default_due_date(data.issue_date, contractor.payment_days),
        **data.model_dump(exclude={"items", "order_ids", "due_date", "bank_account"}),
    )
    invoice.items = build_items([item.model_dump() for item in data.items])
    apply_totals(invoice, invoice.items)
    db.add(invoice)
    await db.flush()

    await _link_orders(db, invoice, data.order_ids)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Invoice",
        entity_id=invoice.id,
        changes=get_entity_changes(None, snapshot(invoice)),
        request=request,
    )
    await db.commit()
    await db.refresh(invoice)

    background_tasks.add_task(
        trigger_webhook,
        tenant_id,
        "invoice.created",
        {
            "id": str(invoice.id),
            "invoice_number": invoice.invoice_number,
            "contractor_id": str(invoice.contractor_id),
            "gross_amount": float(invoice.gross_amount),
            "currency": invoice.currency,
        },
    )
    return await _detail(db, invoice)


@router.patch("/{invoice_id}", response_model=InvoiceDetailResponse)
async def update_invoice(
    invoice_id: UUID,
    data: InvoiceUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetailResponse:
    """
    Update an invoice.

    Drafts are fully editable. Once issued only the status and payment
    data may change.
    """
    tenant_id = current_user.tenant_id
    invoice = await get_tenant_entity(db, Invoice, invoice_id, tenant_id, INVOICE_NOT_FOUND)

    update_data = data.model_dump(exclude_unset=True)
    if invoice.status != InvoiceStatus.DRAFT and set(update_data) - PAYMENT_FIELDS:
        raise InvoiceLockedException()

    was_paid = invoice.is_paid
    old = snapshot(invoice)

    items = update_data.pop("items", None)
    order_ids = update_data.pop("order_ids", None)
    is_paid = update_data.pop("is_paid", None)
    paid_date = update_data.pop("paid_date", None)
    paid_amount = update_data.pop("paid_amount", None)

    if update_data.get("contractor_id"):
        await ensure_reference(
            db, Contractor, update_data["contractor_id"], tenant_id, "contractor_id", "Kontrahent nie istnieje"
        )

    for field, value in update_data.items():
        setattr(invoice, field, value)

    if items is not None:
        invoice.items = build_items(items)
        apply_totals(invoice, invoice.items)
    if order_ids is not None:
        await _link_orders(db, invoice, order_ids)

    if is_paid is True:
        _mark_paid(invoice, paid_date, paid_amount)
    elif is_paid is False:
        if invoice.status == InvoiceStatus.PAID:
            invoice.status = InvoiceStatus.ISSUED
        invoice.paid_date = None
        invoice.paid_amount = None
    elif invoice.status == InvoiceStatus.PAID:
        _mark_paid(invoice, paid_date, paid_amount)
    else:
        if paid_date is not None:
            invoice.paid_date = paid_date
        if paid_amount is not None:
            invoice.paid_amount = paid_amount

    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Invoice",
        entity_id=invoice.id,
        changes=get_entity_changes(old, snapshot(invoice)),
        request=request,
    )
    await db.commit()
    await db.refresh(invoice)

    if invoice.is_paid and not was_paid:
        background_tasks.add_task(
            trigger_webhook,
            tenant_id,
            "invoice.paid",
            {
                "id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "paid_date": invoice.paid_date.isoformat() if invoice.paid_date else None,
                "paid_amount": float(invoice.paid_amount) if invoice.paid_amount is not None else None,
            },
        )
    return await _detail(db, invoice)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a draft invoice and release its orders."""
    invoice = await get_tenant_entity(db, Invoice, invoice_id, current_user.tenant_id, INVOICE_NOT_FOUND)
    if invoice.status != InvoiceStatus.DRAFT:
        raise InvoiceLockedException("Mozna usunac tylko faktury w statusie Szkic")

    await db.execute(update(Order).where(Order.invoice_id == invoice.id).values(invoice_id=None))
    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Invoice",
        entity_id=invoice.id,
        changes=get_entity_changes(snapshot(invoice), None),
        request=request,
    )
    await db.delete(invoice)
    await db.commit()


@router.get("/{invoice_id}/pdf")
async def get_invoice_pdf(
    invoice_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download the invoice as PDF."""
    tenant_id = current_user.tenant_id
    invoice = await get_tenant_entity(db, Invoice, invoice_id, tenant_id, INVOICE_NOT_FOUND)

    buyer = None
    if invoice.contractor_id:
        buyer = model_to_dict(await db.get(Contractor, invoice.contractor_id))

    pdf = pdf_exporter.export_invoice(
        model_to_dict(invoice),
        [model_to_dict(item) for item in invoice.items],
        seller=model_to_dict(await db.get(Tenant, tenant_id)),
        buyer=buyer,
    )
    filename = "faktura-" + re.sub(r"[^A-Za-z0-9_-]+", "_", invoice.invoice_number) + ".pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
