"""
Transport order models: orders, route waypoints, crew assignments and
mobile-app attachments (photos, GPS breadcrumbs).
"""
import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin, utcnow


class OrderType(str, enum.Enum):
    OWN = "OWN"  # Own fleet
    FORWARDING = "FORWARDING"  # Spedycja (subcontracted)


class OrderStatus(str, enum.Enum):
    NEW = "NEW"
    PLANNED = "PLANNED"
    ASSIGNED = "ASSIGNED"
    CONFIRMED = "CONFIRMED"
    ACCEPTED = "ACCEPTED"
    LOADING = "LOADING"
    IN_TRANSIT = "IN_TRANSIT"
    UNLOADING = "UNLOADING"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PROBLEM = "PROBLEM"


# Orders in these states no longer block fleet or driver changes
CLOSED_ORDER_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class WaypointType(str, enum.Enum):
    LOADING = "LOADING"
    UNLOADING = "UNLOADING"
    STOP = "STOP"


class AssignmentReason(str, enum.Enum):
    INITIAL = "INITIAL"
    DRIVER_ILLNESS = "DRIVER_ILLNESS"
    DRIVER_VACATION = "DRIVER_VACATION"
    VEHICLE_BREAKDOWN = "VEHICLE_BREAKDOWN"
    VEHICLE_SERVICE = "VEHICLE_SERVICE"
    SCHEDULE_CONFLICT = "SCHEDULE_CONFLICT"
    CLIENT_REQUEST = "CLIENT_REQUEST"
    OPTIMIZATION = "OPTIMIZATION"
    OTHER = "OTHER"


class Order(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Transport order from loading to unloading.
    """

    __tablename__ = "orders"
    __table_args__ = (UniqueConstraint("tenant_id", "order_number", name="uq_orders_tenant_number"),)

    order_number: Mapped[str] = mapped_column(String(50), nullable=False)
    external_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    type: Mapped[OrderType] = mapped_column(Enum(OrderType), default=OrderType.OWN, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus),
        default=OrderStatus.NEW,
        index=True,
        nullable=False,
    )

    # Parties
    contractor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("contractors.id", ondelete="SET NULL"), index=True, nullable=True
    )
    subcontractor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("contractors.id", ondelete="SET NULL"), nullable=True
    )

    # Primary crew (mirrors the primary assignment)
    vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("vehicles.id", ondelete="SET NULL"), index=True, nullable=True
    )
    trailer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("trailers.id", ondelete="SET NULL"), index=True, nullable=True
    )
    driver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("drivers.id", ondelete="SET NULL"), index=True, nullable=True
    )

    # Route
    origin: Mapped[str] = mapped_column(String(255), nullable=False)
    origin_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    origin_postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    origin_country: Mapped[str] = mapped_column(String(2), default="PL", nullable=False)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    destination_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    destination_postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    destination_country: Mapped[str] = mapped_column(String(2), default="PL", nullable=False)
    distance_km: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Schedule
    loading_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    loading_time_from: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    loading_time_to: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    loading_contact: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    loading_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    unloading_date: Mapped[date] = mapped_column(Date, nullable=False)
    unloading_time_from: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    unloading_time_to: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    unloading_contact: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    unloading_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Cargo
    cargo_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cargo_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cargo_volume: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cargo_pallets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cargo_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    requires_adr: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Finance
    price_net: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="PLN", nullable=False)
    cost_net: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    flat_rate_km: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    flat_rate_overage: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    km_limit: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    km_overage_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("invoices.id", ondelete="SET NULL"), index=True, nullable=True
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Proof of delivery (mobile app)
    pod_signature_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    pod_recipient_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    pod_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Last known position (mobile app)
    last_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_location_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    waypoints: Mapped[list["OrderWaypoint"]] = relationship(
        "OrderWaypoint",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderWaypoint.sequence",
        lazy="selectin",
    )
    assignments: Mapped[list["OrderAssignment"]] = relationship(
        "OrderAssignment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderAssignment.start_date",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} ({self.status.value})>"

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_ORDER_STATUSES


class OrderWaypoint(Base, UUIDMixin):
    """Intermediate stop on the order route."""

    __tablename__ = "order_waypoints"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[WaypointType] = mapped_column(Enum(WaypointType), default=WaypointType.STOP, nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(2), default="PL", nullable=False)
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    scheduled_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="waypoints")


class OrderAssignment(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Driver (plus vehicle/trailer) working on an order for a period,
    with the share of the order revenue allocated to that crew.
    """

    __tablename__ = "order_assignments"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    driver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("drivers.id", ondelete="CASCADE"), index=True, nullable=False
    )
    vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True
    )
    trailer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("trailers.id", ondelete="SET NULL"), nullable=True
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    revenue_share: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    allocated_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    distance_km: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    reason: Mapped[AssignmentReason] = mapped_column(
        Enum(AssignmentReason),
        default=AssignmentReason.INITIAL,
        nullable=False,
    )
    reason_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    order: Mapped["Order"] = relationship("Order", back_populates="assignments")

    @property
    def is_open(self) -> bool:
        """Assignment without an end date still holds its revenue share."""
        return self.end_date is None


class OrderPhoto(Base, UUIDMixin):
    """Photo uploaded by the driver from the mobile app."""

    __tablename__ = "order_photos"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[str] = mapped_column(String(30), default="DOCUMENTATION", nullable=False)
    uploaded_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class OrderLocation(Base, UUIDMixin):
    """GPS breadcrumb reported while the order is on the road."""

    __tablename__ = "order_locations"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
