"""
Audit trail API routes (administrators only).
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import paginate
from app.core.database import get_db
from app.core.security import get_admin_user
from app.models.audit_log import AuditAction, AuditLog
from app.models.user import User
from app.schemas.audit_log import AuditLogListResponse, AuditLogResponse

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    action: Optional[AuditAction] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    user_id: Optional[UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = Query(None, description="Inclusive"),
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    """Audit entries of the tenant, newest first."""
    query = select(AuditLog).where(AuditLog.tenant_id == current_user.tenant_id)

    if action:
        query = query.where(AuditLog.action == action)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)
    if user_id:
        query = query.where(AuditLog.user_id == user_id)
    if date_from:
        query = query.where(AuditLog.created_at >= _day_start(date_from))
    if date_to:
        query = query.where(AuditLog.created_at < _day_start(date_to + timedelta(days=1)))

    query = query.order_by(AuditLog.created_at.desc())
    entries, pagination = await paginate(db, query, page, limit)

    user_ids = {e.user_id for e in entries if e.user_id}
    emails = {}
    if user_ids:
        result = await db.execute(select(User.id, User.email).where(User.id.in_(user_ids)))
        emails = dict(result.all())

    items = []
    for entry in entries:
        item = AuditLogResponse.model_validate(entry)
        item.user_email = emails.get(entry.user_id)
        items.append(item)

    return AuditLogListResponse(items=items, pagination=pagination)
