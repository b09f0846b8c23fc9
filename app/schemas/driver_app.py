"""
Schemas for the driver mobile app.
"""
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.order import OrderStatus
from app.schemas.order import OrderDetailResponse
from app.schemas.validators import Latitude, Longitude
from app.services.status_flow import DRIVER_ALLOWED_STATUSES


class DriverProfile(BaseModel):
    """Logged-in driver with the registration of the current vehicle."""
    id: UUID
    email: EmailStr
    name: Optional[str]
    phone: Optional[str]
    role: str
    is_active: bool
    tenant_id: Optional[UUID]
    driver_id: Optional[UUID]
    vehicle_number: Optional[str] = None


class DriverLoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: DriverProfile


class DriverOrderResponse(BaseModel):
    """Compact order card shown in the app's order list."""
    id: UUID
    order_number: str
    status: OrderStatus
    origin: str
    origin_city: Optional[str]
    loading_date: date
    loading_time_from: Optional[str]
    loading_contact: Optional[str]
    loading_phone: Optional[str]
    destination: str
    destination_city: Optional[str]
    unloading_date: date
    unloading_time_from: Optional[str]
    unloading_contact: Optional[str]
    unloading_phone: Optional[str]
    cargo_description: Optional[str]
    cargo_weight: Optional[float]
    cargo_volume: Optional[float]
    requires_adr: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderPhotoResponse(BaseModel):
    id: UUID
    url: str
    type: str
    created_at: datetime

    class Config:
        from_attributes = True


class DriverOrderDetailResponse(OrderDetailResponse):
    photos: list[OrderPhotoResponse] = []


class DriverStatusUpdate(BaseModel):
    status: OrderStatus

    @field_validator("status")
    @classmethod
    def driver_status_only(cls, v: OrderStatus) -> OrderStatus:
        if v not in DRIVER_ALLOWED_STATUSES:
            raise ValueError("Kierowca nie moze ustawic tego statusu")
        return v


class LocationUpdate(BaseModel):
    latitude: Latitude
    longitude: Longitude
    speed: Optional[float] = Field(None, ge=0)


class SignatureCreate(BaseModel):
    """Signature strokes as SVG path data plus the canvas size."""
    paths: list[str] = Field(..., min_length=1)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    recipient_name: Optional[str] = Field(None, max_length=255)


class PhotoUploadResponse(BaseModel):
    success: bool = True
    photos: list[OrderPhotoResponse]


class PushTokenRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=255)
    platform: str = Field("expo", max_length=20)
