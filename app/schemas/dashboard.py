"""
Dashboard statistics schemas.
"""
from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from app.models.document import DocumentType
from app.models.order import OrderStatus
from app.schemas.validators import Money


class FleetStats(BaseModel):
    total: int
    active: int


class DriverStats(BaseModel):
    total: int
    active: int
    on_leave: int


class OrderStats(BaseModel):
    today: int
    in_transit: int
    planned: int
    this_month: int
    last_month: int


class MoneyStats(BaseModel):
    this_month: Money
    last_month: Money


class InvoiceStats(BaseModel):
    unpaid_count: int
    unpaid_amount: Money
    overdue_count: int
    overdue_amount: Money


class RecentOrder(BaseModel):
    id: UUID
    order_number: str
    status: OrderStatus
    origin: str
    destination: str
    loading_date: date
    price_net: Optional[Money]

    class Config:
        from_attributes = True


class ExpiringDocument(BaseModel):
    id: UUID
    name: str
    type: DocumentType
    expiry_date: date
    days_until_expiry: int


class DashboardStats(BaseModel):
    vehicles: FleetStats
    drivers: DriverStats
    orders: OrderStats
    revenue: MoneyStats
    costs: MoneyStats
    invoices: InvoiceStats
    recent_orders: list[RecentOrder]
    expiring_documents: list[ExpiringDocument]
