"""
Dashboard API routes.
"""
from datetime import date, timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_tenant_user
from app.models.cost import Cost
from app.models.document import Document
from app.models.driver import Driver, DriverStatus
from app.models.invoice import Invoice, InvoiceStatus
from app.models.order import Order, OrderStatus
from app.models.user import User
from app.models.vehicle import Vehicle
from app.schemas.dashboard import (
    DashboardStats,
    DriverStats,
    ExpiringDocument,
    FleetStats,
    InvoiceStats,
    MoneyStats,
    OrderStats,
    RecentOrder,
)
from app.services.expiry import days_until, warning_cutoff
from app.services.money import round_money

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

PLANNED_STATUSES = (OrderStatus.NEW, OrderStatus.PLANNED, OrderStatus.ASSIGNED, OrderStatus.CONFIRMED)
UNPAID_STATUSES = (InvoiceStatus.ISSUED, InvoiceStatus.SENT, InvoiceStatus.OVERDUE)


def month_bounds(today: date) -> tuple[date, date, date]:
    """Start of last month, start of this month and start of next month."""
    this_month = today.replace(day=1)
    last_month = (this_month - timedelta(days=1)).replace(day=1)
    next_month = (this_month + timedelta(days=32)).replace(day=1)
    return last_month, this_month, next_month


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> DashboardStats:
    """Headline figures for the tenant."""
    tenant_id = current_user.tenant_id
    today = date.today()
    last_month, this_month, next_month = month_bounds(today)

    async def count(model, *conditions) -> int:
        return await db.scalar(
            select(func.count(model.id)).where(model.tenant_id == tenant_id, *conditions)
        ) or 0

    async def total(column, *conditions) -> Decimal:
        value = await db.scalar(
            select(func.coalesce(func.sum(column), 0)).where(column.class_.tenant_id == tenant_id, *conditions)
        )
        return round_money(value)

    vehicles = FleetStats(
        total=await count(Vehicle),
        active=await count(Vehicle, Vehicle.is_active.is_(True)),
    )
    drivers = DriverStats(
        total=await count(Driver),
        active=await count(Driver, Driver.is_active.is_(True), Driver.status == DriverStatus.ACTIVE),
        on_leave=await count(Driver, Driver.status == DriverStatus.ON_LEAVE),
    )
    orders = OrderStats(
        today=await count(Order, Order.loading_date == today),
        in_transit=await count(Order, Order.status == OrderStatus.IN_TRANSIT),
        planned=await count(Order, Order.status.in_(PLANNED_STATUSES)),
        this_month=await count(Order, Order.loading_date >= this_month, Order.loading_date < next_month),
        last_month=await count(Order, Order.loading_date >= last_month, Order.loading_date < this_month),
    )

    completed = Order.status == OrderStatus.COMPLETED
    revenue = MoneyStats(
        this_month=await total(Order.price_net, completed, Order.unloading_date >= this_month, Order.unloading_date < next_month),
        last_month=await total(Order.price_net, completed, Order.unloading_date >= last_month, Order.unloading_date < this_month),
    )
    costs = MoneyStats(
        this_month=await total(Cost.amount, Cost.date >= this_month, Cost.date < next_month),
        last_month=await total(Cost.amount, Cost.date >= last_month, Cost.date < this_month),
    )

    unpaid = Invoice.status.in_(UNPAID_STATUSES)
    overdue = (Invoice.status == InvoiceStatus.OVERDUE) | (unpaid & (Invoice.due_date < today))
    invoices = InvoiceStats(
        unpaid_count=await count(Invoice, unpaid),
        unpaid_amount=await total(Invoice.gross_amount, unpaid),
        overdue_count=await count(Invoice, overdue),
        overdue_amount=await total(Invoice.gross_amount, overdue),
    )

    recent = await db.execute(
        select(Order).where(Order.tenant_id == tenant_id).order_by(Order.created_at.desc()).limit(5)
    )
    expiring = await db.execute(
        select(Document)
        .where(
            Document.tenant_id == tenant_id,
            Document.expiry_date >= today,
            Document.expiry_date <= warning_cutoff(today),
        )
        .order_by(Document.expiry_date)
    )

    return DashboardStats(
        vehicles=vehicles,
        drivers=drivers,
        orders=orders,
        revenue=revenue,
        costs=costs,
        invoices=invoices,
        recent_orders=[RecentOrder.model_validate(o) for o in recent.scalars().all()],
        expiring_documents=[
            ExpiringDocument(
                id=d.id,
                name=d.name,
                type=d.type,
                expiry_date=d.expiry_date,
                days_until_expiry=days_until(d.expiry_date, today),
            )
            for d in expiring.scalars().all()
        ],
    )
