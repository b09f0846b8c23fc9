"""
Schemas for finance export and CSV import.
"""
from datetime import date
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel

from app.models.invoice import InvoiceStatus

ImportType = Literal["drivers", "vehicles", "contractors"]


class ExportPreview(BaseModel):
    type: str
    format: str
    record_count: int
    filename: str


class ImportRowError(BaseModel):
    row: int
    field: Optional[str] = None
    message: str


class ImportResult(BaseModel):
    success: bool
    imported: int
    skipped: int
    errors: list[ImportRowError]
    message: str = ""


class ImportColumns(BaseModel):
    type: ImportType
    required: list[str]
    optional: list[str]


class ExportRequest(BaseModel):
    type: Literal["invoices", "costs", "settlement"]
    format: Literal["csv", "xml", "json"] = "csv"
    date_from: date
    date_to: date
    status: Optional[InvoiceStatus] = None
    contractor_id: Optional[UUID] = None
