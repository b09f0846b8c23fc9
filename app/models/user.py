"""
User model for authentication and authorization.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import TimestampMixin, UUIDMixin


class UserRole(str, enum.Enum):
    """User roles for RBAC."""

    SUPER_ADMIN = "SUPER_ADMIN"  # Full access, may create other super admins
    ADMIN = "ADMIN"  # Tenant administrator
    MANAGER = "MANAGER"  # Manage fleet, orders, finance
    DISPATCHER = "DISPATCHER"  # Plan and follow orders
    ACCOUNTANT = "ACCOUNTANT"  # Invoices and costs
    VIEWER = "VIEWER"  # Read only
    DRIVER = "DRIVER"  # Mobile app only


ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)
EDITOR_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.MANAGER)


class User(Base, UUIDMixin, TimestampMixin):
    """User model for authentication."""

    __tablename__ = "users"

    # Authentication fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Profile fields
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        default=UserRole.VIEWER,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    tenant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        index=True,
        nullable=True,
    )

    # Driver profile used by the mobile app
    driver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("drivers.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Refresh token storage (for token invalidation)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.role in ADMIN_ROLES

    @property
    def is_editor(self) -> bool:
        """Check if user may create and modify records."""
        return self.role in EDITOR_ROLES
