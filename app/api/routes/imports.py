"""
CSV import API routes for drivers, vehicles and contractors.
"""
from typing import Literal, Optional, Union

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ValidationException
from app.core.rate_limit import RateLimits, limiter
from app.core.security import get_editor_user
from app.models.audit_log import AuditAction
from app.models.user import User
from app.schemas.import_export import ImportColumns, ImportResult, ImportType
from app.services.audit_service import log_audit
from app.services.import_service import CSV_TEMPLATES, EXPECTED_COLUMNS, import_csv

router = APIRouter(prefix="/import", tags=["import"])

CSV_MIME_TYPES = {"text/csv", "application/vnd.ms-excel", "text/plain", "application/csv"}


@router.get("", response_model=None)
async def get_import_info(
    type: ImportType = Query(...),
    action: Optional[Literal["template"]] = None,
    current_user: User = Depends(get_editor_user),
) -> Union[ImportColumns, Response]:
    """Column description for ``type``, or the CSV template with ``action=template``."""
    if action == "template":
        return Response(
            content=("\ufeff" + CSV_TEMPLATES[type]).encode("utf-8"),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="szablon-{type}.csv"'},
        )
    columns = EXPECTED_COLUMNS[type]
    return ImportColumns(type=type, required=columns["required"], optional=columns["optional"])


@router.post("", response_model=ImportResult)
@limiter.limit(RateLimits.IMPORT)
async def import_data(
    request: Request,
    type: ImportType = Query(...),
    file: UploadFile = File(...),
    current_user: User = Depends(get_editor_user),
    db: AsyncSession = Depends(get_db),
) -> ImportResult:
    """
    Import a ``;``-delimited CSV file.

    Invalid rows and duplicates are skipped and listed in ``errors``;
    valid rows are imported in one transaction.
    """
    is_csv = (file.filename or "").lower().endswith(".csv") or file.content_type in CSV_MIME_TYPES
    if not is_csv:
        raise ValidationException("Dozwolony format: CSV")

    raw = await file.read()
    if len(raw) > settings.max_upload_size_bytes:
        raise ValidationException(f"Maksymalny rozmiar pliku to {settings.MAX_UPLOAD_SIZE_MB}MB")
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationException("Plik musi byc zakodowany w UTF-8")

    result = await import_csv(db, current_user.tenant_id, type, content)

    if result.imported:
        log_audit(
            db,
            user=current_user,
            action=AuditAction.IMPORT,
            entity_type=type,
            metadata={
                "file_name": file.filename,
                "imported": result.imported,
                "skipped": result.skipped,
            },
            request=request,
        )
    await db.commit()

    return result
