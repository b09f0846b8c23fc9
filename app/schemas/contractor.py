"""
Contractor schemas.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.contractor import ContractorType
from app.schemas.common import PaginationMeta
from app.schemas.validators import CountryCode, CountryCodeOptional, Nip, NonNegativeMoney, PhoneNumber, PostalCode


class ContractorBase(BaseModel):
    """Base contractor schema."""
    name: str = Field(..., min_length=1, max_length=255)
    short_name: Optional[str] = Field(None, max_length=100)
    type: ContractorType = ContractorType.CLIENT
    nip: Nip = None
    regon: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: PostalCode = None
    country: CountryCode = "PL"
    phone: PhoneNumber = None
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    contact_phone: PhoneNumber = None
    contact_email: Optional[EmailStr] = None
    payment_days: int = Field(default=14, ge=0, le=365)
    credit_limit: Optional[NonNegativeMoney] = None
    notes: Optional[str] = None
    is_active: bool = True


class ContractorCreate(ContractorBase):
    """Schema for creating a contractor."""
    pass


class ContractorUpdate(BaseModel):
    """Schema for updating a contractor."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    short_name: Optional[str] = Field(None, max_length=100)
    type: Optional[ContractorType] = None
    nip: Nip = None
    regon: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: PostalCode = None
    country: CountryCodeOptional = None
    phone: PhoneNumber = None
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    contact_phone: PhoneNumber = None
    contact_email: Optional[EmailStr] = None
    payment_days: Optional[int] = Field(None, ge=0, le=365)
    credit_limit: Optional[NonNegativeMoney] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class ContractorResponse(ContractorBase):
    """Schema for contractor response."""
    id: UUID
    tenant_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContractorListResponse(BaseModel):
    """Schema for contractor list response."""
    items: list[ContractorResponse]
    pagination: PaginationMeta
