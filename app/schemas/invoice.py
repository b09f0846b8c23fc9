"""
Invoice schemas.
"""
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.invoice import InvoiceStatus, InvoiceType, PaymentMethod
from app.schemas.common import PaginationMeta
from app.schemas.validators import Money, NonNegativeMoney


class InvoiceItemCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: float = Field(default=1.0, gt=0)
    unit: str = Field(default="szt.", max_length=20)
    unit_price_net: NonNegativeMoney
    vat_rate: float = Field(default=23.0, ge=0, le=100)


class InvoiceItemResponse(InvoiceItemCreate):
    id: UUID
    position: int
    net_amount: Money
    vat_amount: Money
    gross_amount: Money

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    """Schema for creating a draft invoice."""
    type: InvoiceType = InvoiceType.SINGLE
    contractor_id: UUID
    issue_date: date = Field(default_factory=date.today)
    sale_date: Optional[date] = None
    due_date: Optional[date] = Field(None, description="Defaults to issue date + contractor payment days")
    payment_method: PaymentMethod = PaymentMethod.TRANSFER
    bank_account: Optional[str] = Field(None, max_length=50)
    currency: str = Field(default="PLN", min_length=3, max_length=3)
    exchange_rate: Optional[float] = Field(None, gt=0)
    exchange_rate_date: Optional[date] = None
    notes: Optional[str] = None
    items: list[InvoiceItemCreate] = Field(..., min_length=1)
    order_ids: list[UUID] = []


class InvoiceUpdate(BaseModel):
    """
    Schema for updating an invoice.

    Only DRAFT invoices accept content changes; issued invoices accept
    ``status`` and payment fields.
    """
    type: Optional[InvoiceType] = None
    contractor_id: Optional[UUID] = None
    issue_date: Optional[date] = None
    sale_date: Optional[date] = None
    due_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    bank_account: Optional[str] = Field(None, max_length=50)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    exchange_rate: Optional[float] = Field(None, gt=0)
    exchange_rate_date: Optional[date] = None
    notes: Optional[str] = None
    items: Optional[list[InvoiceItemCreate]] = Field(None, min_length=1)
    order_ids: Optional[list[UUID]] = None

    status: Optional[InvoiceStatus] = None
    is_paid: Optional[bool] = None
    paid_date: Optional[date] = None
    paid_amount: Optional[NonNegativeMoney] = None


class InvoiceResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    invoice_number: str
    type: InvoiceType
    status: InvoiceStatus
    contractor_id: Optional[UUID]
    issue_date: date
    sale_date: Optional[date]
    due_date: date
    payment_method: PaymentMethod
    bank_account: Optional[str]
    currency: str
    exchange_rate: Optional[float]
    exchange_rate_date: Optional[date]
    net_amount: Money
    vat_amount: Money
    gross_amount: Money
    is_paid: bool
    paid_date: Optional[date]
    paid_amount: Optional[Money]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceDetailResponse(InvoiceResponse):
    items: list[InvoiceItemResponse] = []
    order_ids: list[UUID] = []


class InvoiceListResponse(BaseModel):
    items: list[InvoiceResponse]
    pagination: PaginationMeta
