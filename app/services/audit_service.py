"""
Audit trail.

``log_audit`` adds the AuditLog row to the caller's session, so it is
committed (or rolled back) together with the change it describes.
"""
import enum
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from fastapi import Request
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditAction, AuditLog
from app.models.user import User

logger = logging.getLogger(__name__)

SKIP_FIELDS = frozenset({
    "created_at",
    "updated_at",
    "hashed_password",
    "password",
    "refresh_token",
    "tenant_id",
    "waypoints",
    "assignments",
    "items",
})


def to_json_value(value: Any) -> Any:
    """Column value as something the JSON column accepts."""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    return value


def snapshot(entity: Any) -> dict[str, Any]:
    """Plain column values of a mapped object, relations excluded."""
    mapper = inspect(entity).mapper
    return {
        attr.key: to_json_value(getattr(entity, attr.key))
        for attr in mapper.column_attrs
        if attr.key not in SKIP_FIELDS
    }


def get_entity_changes(
    old_data: Optional[dict[str, Any]],
    new_data: Optional[dict[str, Any]],
) -> Optional[dict[str, dict[str, Any]]]:
    """
    Diff two snapshots into ``{field: {"old": ..., "new": ...}}``.

    A missing side means creation (``old`` is None) or deletion
    (``new`` is None). Returns None when nothing changed.
    """
    if not old_data and not new_data:
        return None

    old_data = old_data or {}
    new_data = new_data or {}
    changes = {}
    for key in {*old_data, *new_data}:
        if key in SKIP_FIELDS:
            continue
        old_value = to_json_value(old_data.get(key))
        new_value = to_json_value(new_data.get(key))
        if old_value != new_value:
            changes[key] = {"old": old_value, "new": new_value}
    return changes or None


def get_ip_address(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


def log_audit(
    db: AsyncSession,
    *,
    user: Optional[User],
    action: AuditAction,
    entity_type: str,
    entity_id: Any = None,
    changes: Optional[dict[str, Any]] = None,
    metadata: Optional[dict[str, Any]] = None,
    request: Optional[Request] = None,
    tenant_id: Optional[uuid.UUID] = None,
) -> Optional[AuditLog]:
    """Stage an audit entry in ``db``; the caller commits."""
    tenant_id = tenant_id or (user.tenant_id if user else None)
    if tenant_id is None:
        logger.warning(f"Skipping audit entry without tenant: {action.value} {entity_type}")
        return None

    user_agent = request.headers.get("user-agent") if request is not None else None
    entry = AuditLog(
        tenant_id=tenant_id,
        user_id=user.id if user else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        changes=changes,
        extra={k: to_json_value(v) for k, v in metadata.items()} if metadata else None,
        ip_address=get_ip_address(request),
        user_agent=user_agent[:500] if user_agent else None,
    )
    db.add(entry)
    return entry
