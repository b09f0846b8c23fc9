"""
Order, waypoint and assignment schemas.
"""
from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.models.order import AssignmentReason, OrderStatus, OrderType, WaypointType
from app.schemas.common import PaginationMeta
from app.schemas.validators import (
    CountryCode,
    CountryCodeOptional,
    Money,
    NonNegativeMoney,
    PhoneNumber,
    TimeOfDay,
)
from app.services.status_flow import get_status_label


# ============== Waypoints ==============

class WaypointBase(BaseModel):
    type: WaypointType = WaypointType.STOP
    address: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: CountryCode = "PL"
    scheduled_date: Optional[date] = None
    scheduled_time: TimeOfDay = None
    notes: Optional[str] = None


class WaypointCreate(WaypointBase):
    """Waypoint in request payloads; ``sequence`` defaults to list position."""
    sequence: Optional[int] = Field(None, ge=0)


class WaypointResponse(WaypointBase):
    id: UUID
    sequence: int

    class Config:
        from_attributes = True


# ============== Assignments ==============

class AssignmentCreate(BaseModel):
    """Driver (with optional vehicle and trailer) taking part in an order."""
    driver_id: UUID
    vehicle_id: Optional[UUID] = None
    trailer_id: Optional[UUID] = None
    start_date: Optional[date] = Field(None, description="Defaults to the order loading date")
    end_date: Optional[date] = None
    revenue_share: float = Field(default=1.0, gt=0, le=1)
    distance_km: Optional[float] = Field(None, ge=0)
    reason: AssignmentReason = AssignmentReason.INITIAL
    reason_note: Optional[str] = None
    is_primary: bool = False


class AssignmentUpdate(BaseModel):
    """
    Partial assignment update.

    ``action="end"`` closes the assignment at ``end_date`` (today by default)
    and ignores the other fields.
    """
    action: Optional[Literal["end"]] = None
    vehicle_id: Optional[UUID] = None
    trailer_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    revenue_share: Optional[float] = Field(None, gt=0, le=1)
    distance_km: Optional[float] = Field(None, ge=0)
    reason: Optional[AssignmentReason] = None
    reason_note: Optional[str] = None
    is_primary: Optional[bool] = None
    is_active: Optional[bool] = None


class AssignmentResponse(BaseModel):
    id: UUID
    order_id: UUID
    driver_id: UUID
    vehicle_id: Optional[UUID]
    trailer_id: Optional[UUID]
    start_date: date
    end_date: Optional[date]
    revenue_share: float
    allocated_amount: Optional[Money]
    distance_km: Optional[float]
    reason: AssignmentReason
    reason_note: Optional[str]
    is_primary: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AssignmentSummary(BaseModel):
    total: int
    active: int
    completed: int
    total_revenue_share: float
    total_allocated: Money
    order_price: Optional[Money]
    remaining_share: float


class AssignmentListResponse(BaseModel):
    items: list[AssignmentResponse]
    summary: AssignmentSummary


# ============== Orders ==============

class OrderBase(BaseModel):
    """Base order schema."""
    order_number: str = Field(..., min_length=1, max_length=50)
    external_number: Optional[str] = Field(None, max_length=100)
    type: OrderType = OrderType.OWN

    contractor_id: Optional[UUID] = None
    subcontractor_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    trailer_id: Optional[UUID] = None
    driver_id: Optional[UUID] = None

    origin: str = Field(..., min_length=1, max_length=255)
    origin_city: Optional[str] = Field(None, max_length=100)
    origin_postal_code: Optional[str] = Field(None, max_length=20)
    origin_country: CountryCode = "PL"
    destination: str = Field(..., min_length=1, max_length=255)
    destination_city: Optional[str] = Field(None, max_length=100)
    destination_postal_code: Optional[str] = Field(None, max_length=20)
    destination_country: CountryCode = "PL"
    distance_km: Optional[float] = Field(None, ge=0)

    loading_date: date
    loading_time_from: TimeOfDay = None
    loading_time_to: TimeOfDay = None
    loading_contact: Optional[str] = Field(None, max_length=255)
    loading_phone: PhoneNumber = None
    unloading_date: date
    unloading_time_from: TimeOfDay = None
    unloading_time_to: TimeOfDay = None
    unloading_contact: Optional[str] = Field(None, max_length=255)
    unloading_phone: PhoneNumber = None

    cargo_description: Optional[str] = None
    cargo_weight: Optional[float] = Field(None, ge=0, description="Weight in kg")
    cargo_volume: Optional[float] = Field(None, ge=0, description="Volume in m3")
    cargo_pallets: Optional[int] = Field(None, ge=0)
    cargo_value: Optional[NonNegativeMoney] = None
    requires_adr: bool = False

    price_net: Optional[NonNegativeMoney] = None
    currency: str = Field(default="PLN", min_length=3, max_length=3)
    cost_net: Optional[NonNegativeMoney] = None
    flat_rate_km: Optional[float] = Field(None, ge=0)
    flat_rate_overage: Optional[NonNegativeMoney] = None
    km_limit: Optional[float] = Field(None, ge=0)
    km_overage_rate: Optional[NonNegativeMoney] = None

    notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_dates(self):
        if self.unloading_date < self.loading_date:
            raise ValueError("Data rozladunku nie moze byc wczesniejsza niz data zaladunku")
        return self


class OrderCreate(OrderBase):
    """Schema for creating an order with optional route and crew."""
    status: OrderStatus = OrderStatus.NEW
    waypoints: list[WaypointCreate] = []
    assignments: list[AssignmentCreate] = []


class OrderUpdate(BaseModel):
    """Schema for updating an order. ``waypoints`` replaces the route when given."""
    order_number: Optional[str] = Field(None, min_length=1, max_length=50)
    external_number: Optional[str] = Field(None, max_length=100)
    type: Optional[OrderType] = None
    status: Optional[OrderStatus] = None
    contractor_id: Optional[UUID] = None
    subcontractor_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    trailer_id: Optional[UUID] = None
    driver_id: Optional[UUID] = None
    origin: Optional[str] = Field(None, min_length=1, max_length=255)
    origin_city: Optional[str] = Field(None, max_length=100)
    origin_postal_code: Optional[str] = Field(None, max_length=20)
    origin_country: CountryCodeOptional = None
    destination: Optional[str] = Field(None, min_length=1, max_length=255)
    destination_city: Optional[str] = Field(None, max_length=100)
    destination_postal_code: Optional[str] = Field(None, max_length=20)
    destination_country: CountryCodeOptional = None
    distance_km: Optional[float] = Field(None, ge=0)
    loading_date: Optional[date] = None
    loading_time_from: TimeOfDay = None
    loading_time_to: TimeOfDay = None
    loading_contact: Optional[str] = Field(None, max_length=255)
    loading_phone: PhoneNumber = None
    unloading_date: Optional[date] = None
    unloading_time_from: TimeOfDay = None
    unloading_time_to: TimeOfDay = None
    unloading_contact: Optional[str] = Field(None, max_length=255)
    unloading_phone: PhoneNumber = None
    cargo_description: Optional[str] = None
    cargo_weight: Optional[float] = Field(None, ge=0)
    cargo_volume: Optional[float] = Field(None, ge=0)
    cargo_pallets: Optional[int] = Field(None, ge=0)
    cargo_value: Optional[NonNegativeMoney] = None
    requires_adr: Optional[bool] = None
    price_net: Optional[NonNegativeMoney] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    cost_net: Optional[NonNegativeMoney] = None
    flat_rate_km: Optional[float] = Field(None, ge=0)
    flat_rate_overage: Optional[NonNegativeMoney] = None
    km_limit: Optional[float] = Field(None, ge=0)
    km_overage_rate: Optional[NonNegativeMoney] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    waypoints: Optional[list[WaypointCreate]] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderResponse(OrderBase):
    """Order as returned by list endpoints."""
    id: UUID
    tenant_id: UUID
    status: OrderStatus
    status_label: str = ""
    invoice_id: Optional[UUID] = None
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def fill_status_label(self):
        self.status_label = get_status_label(self.status)
        return self


class OrderDetailResponse(OrderResponse):
    """Single order with route, crew history and mobile-app data."""
    waypoints: list[WaypointResponse] = []
    assignments: list[AssignmentResponse] = []
    pod_signature_url: Optional[str] = None
    pod_recipient_name: Optional[str] = None
    pod_signed_at: Optional[datetime] = None
    last_latitude: Optional[float] = None
    last_longitude: Optional[float] = None
    last_location_at: Optional[datetime] = None


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    pagination: PaginationMeta
