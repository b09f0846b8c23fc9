"""
Authentication and User schemas.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.user import UserRole
from app.schemas.common import PaginationMeta
from app.schemas.validators import PhoneNumber


# ============== Token Schemas ==============

class Token(BaseModel):
    """Token response schema."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    """Refresh token request."""
    refresh_token: str


class LoginRequest(BaseModel):
    """Login request schema."""
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


# ============== User Schemas ==============

class UserBase(BaseModel):
    """Base user schema."""
    email: EmailStr = Field(..., description="User email address")
    name: Optional[str] = Field(None, max_length=255, description="Display name")
    phone: PhoneNumber = None
    role: UserRole = Field(default=UserRole.VIEWER, description="User role")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserCreate(UserBase):
    """Schema for admin creating a user."""
    password: str = Field(..., min_length=8, max_length=100, description="Password")
    driver_id: Optional[UUID] = Field(None, description="Driver profile for DRIVER accounts")
    is_active: bool = Field(default=True)


class UserUpdate(BaseModel):
    """Schema for admin updating a user."""
    name: Optional[str] = Field(None, max_length=255)
    phone: PhoneNumber = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    driver_id: Optional[UUID] = None
    password: Optional[str] = Field(None, min_length=8, max_length=100)


class ProfileUpdate(BaseModel):
    """Schema for a user updating own profile."""
    name: Optional[str] = Field(None, max_length=255)
    phone: PhoneNumber = None
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=8, max_length=100)


class UserResponse(BaseModel):
    """Schema for user response."""
    id: UUID
    email: EmailStr
    name: Optional[str]
    phone: Optional[str]
    role: UserRole
    is_active: bool
    tenant_id: Optional[UUID]
    driver_id: Optional[UUID]
    last_login_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Paginated list of users."""
    items: list[UserResponse]
    pagination: PaginationMeta


class LoginResponse(BaseModel):
    """Login response with tokens and user info."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
