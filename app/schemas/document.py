"""
Document schemas.
"""
from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.models.document import DOCUMENT_TYPE_LABELS, DocumentType
from app.schemas.common import PaginationMeta
from app.services.expiry import days_until

DocumentEntityType = Literal["vehicle", "trailer", "driver", "order", "company"]


class DocumentBase(BaseModel):
    type: DocumentType
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    file_url: str = Field(..., min_length=1, max_length=500)
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = Field(None, max_length=100)
    expiry_date: Optional[date] = None
    vehicle_id: Optional[UUID] = None
    trailer_id: Optional[UUID] = None
    driver_id: Optional[UUID] = None
    order_id: Optional[UUID] = None


class DocumentCreate(DocumentBase):
    pass


class DocumentUpdate(BaseModel):
    type: Optional[DocumentType] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    expiry_date: Optional[date] = None
    vehicle_id: Optional[UUID] = None
    trailer_id: Optional[UUID] = None
    driver_id: Optional[UUID] = None
    order_id: Optional[UUID] = None


class DocumentResponse(DocumentBase):
    id: UUID
    tenant_id: UUID
    type_label: str = ""
    uploaded_by_id: Optional[UUID] = None
    days_until_expiry: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def fill_computed(self):
        self.type_label = DOCUMENT_TYPE_LABELS.get(self.type, self.type.value)
        self.days_until_expiry = days_until(self.expiry_date)
        return self


class DocumentListResponse(BaseModel):
    items: list[DocumentResponse]
    pagination: PaginationMeta


class UploadResponse(BaseModel):
    """Stored file, ready to be referenced by a document record."""
    url: str
    file_name: str
    file_size: int
    mime_type: str
