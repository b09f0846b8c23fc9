"""
Finance export API routes (invoices, costs, period settlement).
"""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.rate_limit import RateLimits, limiter
from app.core.security import get_editor_user
from app.models.audit_log import AuditAction
from app.models.invoice import InvoiceStatus
from app.models.user import User
from app.schemas.import_export import ExportPreview, ExportRequest
from app.services.audit_service import log_audit
from app.services.export_service import ExportFormat, ExportType, build_export

router = APIRouter(prefix="/export", tags=["export"])


@router.get("")
@limiter.limit(RateLimits.EXPORT)
async def export_data(
    request: Request,
    type: ExportType = Query(..., description="invoices, costs or settlement"),
    format: ExportFormat = Query("csv"),
    date_from: date = Query(...),
    date_to: date = Query(...),
    status: Optional[InvoiceStatus] = Query(None, description="Invoice status (invoices only)"),
    contractor_id: Optional[UUID] = Query(None, description="Contractor (invoices only)"),
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Download an export file for accounting.

    ``X-Record-Count`` carries the number of exported records.
    """
    result = await build_export(
        db,
        current_user.tenant_id,
        type,
        format,
        date_from,
        date_to,
        status=status,
        contractor_id=contractor_id,
    )

    log_audit(
        db,
        user=current_user,
        action=AuditAction.EXPORT,
        entity_type="Export",
        metadata={
            "type": type,
            "format": format,
            "date_from": date_from,
            "date_to": date_to,
            "record_count": result.record_count,
        },
        request=request,
    )
    await db.commit()

    return Response(
        content=result.content.encode("utf-8"),
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Record-Count": str(result.record_count),
        },
    )


@router.post("", response_model=ExportPreview)
@limiter.limit(RateLimits.EXPORT)
async def preview_export(
    request: Request,
    body: ExportRequest,
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> ExportPreview:
    """Record count and file name of an export, without the file."""
    result = await build_export(
        db,
        current_user.tenant_id,
        body.type,
        body.format,
        body.date_from,
        body.date_to,
        status=body.status,
        contractor_id=body.contractor_id,
    )
    return ExportPreview(
        type=body.type,
        format=body.format,
        record_count=result.record_count,
        filename=result.filename,
    )
