"""
Driver schemas.
"""
from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.models.driver import DriverStatus, EmploymentType
from app.schemas.common import PaginationMeta
from app.schemas.validators import Pesel, PhoneNumber, PostalCode


class DriverBase(BaseModel):
    """Base driver schema."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    pesel: Pesel = None
    date_of_birth: Optional[date] = None
    phone: PhoneNumber = None
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: PostalCode = None

    employment_type: EmploymentType = EmploymentType.EMPLOYMENT
    employment_date: Optional[date] = None
    termination_date: Optional[date] = None
    current_vehicle_id: Optional[UUID] = None

    license_number: Optional[str] = Field(None, max_length=50)
    license_expiry: Optional[date] = None
    license_categories: Optional[str] = Field(None, max_length=50)
    adr_number: Optional[str] = Field(None, max_length=50)
    adr_expiry: Optional[date] = None
    adr_classes: Optional[str] = Field(None, max_length=50)
    medical_expiry: Optional[date] = None

    status: DriverStatus = DriverStatus.ACTIVE
    notes: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def validate_employment_dates(self):
        """Termination cannot precede employment."""
        if self.employment_date and self.termination_date and self.termination_date < self.employment_date:
            raise ValueError("Data zwolnienia nie moze byc wczesniejsza niz data zatrudnienia")
        return self


class DriverCreate(DriverBase):
    """Schema for creating a driver."""
    pass


class DriverUpdate(BaseModel):
    """Schema for updating a driver."""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    pesel: Pesel = None
    date_of_birth: Optional[date] = None
    phone: PhoneNumber = None
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: PostalCode = None
    employment_type: Optional[EmploymentType] = None
    employment_date: Optional[date] = None
    termination_date: Optional[date] = None
    current_vehicle_id: Optional[UUID] = None
    license_number: Optional[str] = Field(None, max_length=50)
    license_expiry: Optional[date] = None
    license_categories: Optional[str] = Field(None, max_length=50)
    adr_number: Optional[str] = Field(None, max_length=50)
    adr_expiry: Optional[date] = None
    adr_classes: Optional[str] = Field(None, max_length=50)
    medical_expiry: Optional[date] = None
    status: Optional[DriverStatus] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class ExpiryWarning(BaseModel):
    """Document that expires soon or already expired."""
    type: Literal["license", "adr", "medical"]
    label: str
    expiry_date: date
    days_until_expiry: int
    is_expired: bool


class DriverResponse(DriverBase):
    """Schema for driver response."""
    id: UUID
    tenant_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DriverDetailResponse(DriverResponse):
    """Driver with expiry warnings and current vehicle plate."""
    current_vehicle_registration: Optional[str] = None
    expiry_warnings: list[ExpiryWarning] = []


class DriverListResponse(BaseModel):
    """Schema for driver list response."""
    items: list[DriverResponse]
    pagination: PaginationMeta
