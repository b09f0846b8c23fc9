"""
Vehicle and trailer schemas.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.vehicle import FuelType, TrailerType, VehicleStatus, VehicleType
from app.schemas.common import PaginationMeta
from app.schemas.validators import RegistrationNumber, RegistrationNumberOptional


class VehicleBase(BaseModel):
    """Base vehicle schema."""
    registration_number: RegistrationNumber
    type: VehicleType = VehicleType.TRUCK
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    vin: Optional[str] = Field(None, max_length=17)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    status: VehicleStatus = VehicleStatus.ACTIVE
    load_capacity: Optional[float] = Field(None, ge=0, description="Load capacity in kg")
    volume: Optional[float] = Field(None, ge=0, description="Cargo volume in m3")
    euro_class: Optional[str] = Field(None, max_length=10)
    fuel_type: FuelType = FuelType.DIESEL
    current_driver_id: Optional[UUID] = None
    current_trailer_id: Optional[UUID] = None
    notes: Optional[str] = None
    is_active: bool = True


class VehicleCreate(VehicleBase):
    """Schema for creating a vehicle."""
    pass


class VehicleUpdate(BaseModel):
    """Schema for updating a vehicle."""
    registration_number: RegistrationNumberOptional = None
    type: Optional[VehicleType] = None
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    vin: Optional[str] = Field(None, max_length=17)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    status: Optional[VehicleStatus] = None
    load_capacity: Optional[float] = Field(None, ge=0)
    volume: Optional[float] = Field(None, ge=0)
    euro_class: Optional[str] = Field(None, max_length=10)
    fuel_type: Optional[FuelType] = None
    current_driver_id: Optional[UUID] = None
    current_trailer_id: Optional[UUID] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class VehicleResponse(VehicleBase):
    """Schema for vehicle response."""
    id: UUID
    tenant_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    """Schema for vehicle list response."""
    items: list[VehicleResponse]
    pagination: PaginationMeta


class TrailerBase(BaseModel):
    """Base trailer schema."""
    registration_number: RegistrationNumber
    type: TrailerType = TrailerType.CURTAIN
    brand: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    load_capacity: Optional[float] = Field(None, ge=0)
    volume: Optional[float] = Field(None, ge=0)
    axles: Optional[int] = Field(None, ge=1, le=10)
    adr_classes: Optional[str] = Field(None, max_length=50)
    status: VehicleStatus = VehicleStatus.ACTIVE
    notes: Optional[str] = None
    is_active: bool = True


class TrailerCreate(TrailerBase):
    """Schema for creating a trailer."""
    pass


class TrailerUpdate(BaseModel):
    """Schema for updating a trailer."""
    registration_number: RegistrationNumberOptional = None
    type: Optional[TrailerType] = None
    brand: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    load_capacity: Optional[float] = Field(None, ge=0)
    volume: Optional[float] = Field(None, ge=0)
    axles: Optional[int] = Field(None, ge=1, le=10)
    adr_classes: Optional[str] = Field(None, max_length=50)
    status: Optional[VehicleStatus] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class TrailerResponse(TrailerBase):
    """Schema for trailer response."""
    id: UUID
    tenant_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TrailerListResponse(BaseModel):
    """Schema for trailer list response."""
    items: list[TrailerResponse]
    pagination: PaginationMeta
