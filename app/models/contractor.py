"""
Contractor model (clients and carriers).
"""
import enum
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin


class ContractorType(str, enum.Enum):
    CLIENT = "CLIENT"
    CARRIER = "CARRIER"
    BOTH = "BOTH"


class Contractor(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """Counterparty on an order: the client paying or the subcontracted carrier."""

    __tablename__ = "contractors"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    short_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    type: Mapped[ContractorType] = mapped_column(
        Enum(ContractorType),
        default=ContractorType.CLIENT,
        nullable=False,
    )

    # Registry numbers
    nip: Mapped[Optional[str]] = mapped_column(String(20), index=True, nullable=True)
    regon: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Address
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[str] = mapped_column(String(2), default="PL", nullable=False)

    # Contact
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_person: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Payment terms
    payment_days: Mapped[int] = mapped_column(Integer, default=14, nullable=False)
    credit_limit: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Contractor {self.name}>"
