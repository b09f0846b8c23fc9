"""
Driver model.
"""
import enum
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Boolean, Date, Enum, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin


class EmploymentType(str, enum.Enum):
    """Form of cooperation with the driver."""

    EMPLOYMENT = "EMPLOYMENT"  # Umowa o prace
    B2B = "B2B"
    CONTRACT = "CONTRACT"  # Umowa zlecenie


class DriverStatus(str, enum.Enum):
    """Current driver availability."""

    ACTIVE = "ACTIVE"
    ON_LEAVE = "ON_LEAVE"
    SICK = "SICK"
    INACTIVE = "INACTIVE"
    TERMINATED = "TERMINATED"


DRIVER_STATUS_LABELS = {
    DriverStatus.ACTIVE: "Aktywny",
    DriverStatus.ON_LEAVE: "Urlop",
    DriverStatus.SICK: "Chorobowe",
    DriverStatus.INACTIVE: "Nieaktywny",
    DriverStatus.TERMINATED: "Zwolniony",
}


class Driver(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Driver employed or contracted by the tenant.

    Tracks the licence, ADR certificate and medical examination
    expiry dates used for expiry warnings.
    """

    __tablename__ = "drivers"
    __table_args__ = (UniqueConstraint("tenant_id", "pesel", name="uq_drivers_tenant_pesel"),)

    # Personal data
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    pesel: Mapped[Optional[str]] = mapped_column(String(11), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Employment
    employment_type: Mapped[EmploymentType] = mapped_column(
        Enum(EmploymentType),
        default=EmploymentType.EMPLOYMENT,
        nullable=False,
    )
    employment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    termination_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    current_vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("vehicles.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Driving licence
    license_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    license_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    license_categories: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # ADR certificate
    adr_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    adr_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    adr_classes: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    medical_expiry: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[DriverStatus] = mapped_column(
        Enum(DriverStatus),
        default=DriverStatus.ACTIVE,
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Driver {self.first_name} {self.last_name}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
