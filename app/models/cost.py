"""
Operating cost model.
"""
import enum
import uuid
from datetime import date as date_type
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, Enum, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin


class CostCategory(str, enum.Enum):
    FUEL = "FUEL"
    SERVICE = "SERVICE"
    TOLL = "TOLL"
    INSURANCE = "INSURANCE"
    PARKING = "PARKING"
    FINE = "FINE"
    SALARY = "SALARY"
    TAX = "TAX"
    OFFICE = "OFFICE"
    OTHER = "OTHER"


COST_CATEGORY_LABELS = {
    CostCategory.FUEL: "Paliwo",
    CostCategory.SERVICE: "Serwis",
    CostCategory.TOLL: "Opłaty drogowe",
    CostCategory.INSURANCE: "Ubezpieczenie",
    CostCategory.PARKING: "Parking",
    CostCategory.FINE: "Mandaty",
    CostCategory.SALARY: "Wynagrodzenia",
    CostCategory.TAX: "Podatki",
    CostCategory.OFFICE: "Biuro",
    CostCategory.OTHER: "Inne",
}


class Cost(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """Cost booked against a vehicle, driver or order (or the company)."""

    __tablename__ = "costs"

    category: Mapped[CostCategory] = mapped_column(Enum(CostCategory), index=True, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="PLN", nullable=False)
    date: Mapped[date_type] = mapped_column(Date, index=True, nullable=False)

    vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("vehicles.id", ondelete="SET NULL"), index=True, nullable=True
    )
    driver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("drivers.id", ondelete="SET NULL"), index=True, nullable=True
    )
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="SET NULL"), index=True, nullable=True
    )

    attachment_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Cost {self.category.value} {self.amount}>"
