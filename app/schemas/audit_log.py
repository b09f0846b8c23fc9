"""
Audit log schemas.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.audit_log import AuditAction
from app.schemas.common import PaginationMeta


class AuditLogResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID]
    user_email: Optional[str] = None
    action: AuditAction
    entity_type: str
    entity_id: Optional[str]
    changes: Optional[dict[str, Any]]
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="extra")
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    items: list[AuditLogResponse]
    pagination: PaginationMeta
