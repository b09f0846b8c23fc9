"""
Vehicle and trailer models for the fleet.
"""
import enum
import uuid
from typing import Optional

from sqlalchemy import Boolean, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin


class VehicleType(str, enum.Enum):
    TRUCK = "TRUCK"  # Ciagnik
    BUS = "BUS"
    SOLO = "SOLO"
    TRAILER = "TRAILER"
    CAR = "CAR"


class VehicleStatus(str, enum.Enum):
    """Shared by vehicles and trailers."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    IN_SERVICE = "IN_SERVICE"
    SOLD = "SOLD"


class FuelType(str, enum.Enum):
    DIESEL = "DIESEL"
    PETROL = "PETROL"
    LPG = "LPG"
    ELECTRIC = "ELECTRIC"
    HYBRID = "HYBRID"


class TrailerType(str, enum.Enum):
    CURTAIN = "CURTAIN"  # Firanka
    BOX = "BOX"
    REFRIGERATOR = "REFRIGERATOR"
    TANKER = "TANKER"
    FLATBED = "FLATBED"
    MEGA = "MEGA"
    TIPPER = "TIPPER"
    OTHER = "OTHER"


VEHICLE_TYPE_LABELS = {
    VehicleType.TRUCK: "Ciągnik",
    VehicleType.BUS: "Bus",
    VehicleType.SOLO: "Solówka",
    VehicleType.TRAILER: "Naczepa",
    VehicleType.CAR: "Osobówka",
}

VEHICLE_STATUS_LABELS = {
    VehicleStatus.ACTIVE: "Aktywny",
    VehicleStatus.INACTIVE: "Nieaktywny",
    VehicleStatus.IN_SERVICE: "W serwisie",
    VehicleStatus.SOLD: "Sprzedany",
}


class Vehicle(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Fleet vehicle with capacity data and current crew.
    """

    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("tenant_id", "registration_number", name="uq_vehicles_tenant_registration"),
    )

    # Identification
    registration_number: Mapped[str] = mapped_column(String(20), nullable=False)
    type: Mapped[VehicleType] = mapped_column(Enum(VehicleType), default=VehicleType.TRUCK, nullable=False)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    vin: Mapped[Optional[str]] = mapped_column(String(17), nullable=True)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[VehicleStatus] = mapped_column(
        Enum(VehicleStatus),
        default=VehicleStatus.ACTIVE,
        nullable=False,
    )

    # Capacity
    load_capacity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # kg
    volume: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # m3
    euro_class: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    fuel_type: Mapped[FuelType] = mapped_column(Enum(FuelType), default=FuelType.DIESEL, nullable=False)

    # Current crew
    current_driver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("drivers.id", ondelete="SET NULL", use_alter=True, name="fk_vehicles_current_driver"),
        nullable=True,
    )
    current_trailer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("trailers.id", ondelete="SET NULL"),
        nullable=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Vehicle {self.registration_number}>"


class Trailer(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Semi-trailer or trailer.
    """

    __tablename__ = "trailers"
    __table_args__ = (
        UniqueConstraint("tenant_id", "registration_number", name="uq_trailers_tenant_registration"),
    )

    registration_number: Mapped[str] = mapped_column(String(20), nullable=False)
    type: Mapped[TrailerType] = mapped_column(Enum(TrailerType), default=TrailerType.CURTAIN, nullable=False)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    load_capacity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    volume: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    axles: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    adr_classes: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    status: Mapped[VehicleStatus] = mapped_column(
        Enum(VehicleStatus),
        default=VehicleStatus.ACTIVE,
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Trailer {self.registration_number}>"
