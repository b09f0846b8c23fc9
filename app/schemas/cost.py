"""
Cost schemas.
"""
from datetime import date as date_type, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.models.cost import COST_CATEGORY_LABELS, CostCategory
from app.schemas.common import PaginationMeta
from app.schemas.validators import Money, PositiveMoney


class CostBase(BaseModel):
    category: CostCategory
    description: str = Field(..., min_length=1, max_length=500)
    amount: PositiveMoney = Field(..., description="Kwota musi byc wieksza od 0")
    currency: str = Field(default="PLN", min_length=3, max_length=3)
    date: date_type
    vehicle_id: Optional[UUID] = None
    driver_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    attachment_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None


class CostCreate(CostBase):
    pass


class CostUpdate(BaseModel):
    category: Optional[CostCategory] = None
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    amount: Optional[PositiveMoney] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    date: Optional[date_type] = None
    vehicle_id: Optional[UUID] = None
    driver_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    attachment_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None


class CostResponse(CostBase):
    id: UUID
    tenant_id: UUID
    category_label: str = ""
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def fill_category_label(self):
        self.category_label = COST_CATEGORY_LABELS.get(self.category, self.category.value)
        return self


class CostSummary(BaseModel):
    category_totals: dict[str, Money]
    total: Money


class CostListResponse(BaseModel):
    items: list[CostResponse]
    pagination: PaginationMeta
    summary: CostSummary
