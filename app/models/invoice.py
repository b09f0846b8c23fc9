"""
Invoice models.
"""
import enum
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, Enum, Float, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin


class InvoiceType(str, enum.Enum):
    SINGLE = "SINGLE"
    COLLECTIVE = "COLLECTIVE"  # Zbiorcza (several orders)
    PROFORMA = "PROFORMA"
    CORRECTION = "CORRECTION"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    TRANSFER = "TRANSFER"
    CASH = "CASH"
    CARD = "CARD"


INVOICE_STATUS_LABELS = {
    InvoiceStatus.DRAFT: "Szkic",
    InvoiceStatus.ISSUED: "Wystawiona",
    InvoiceStatus.SENT: "Wyslana",
    InvoiceStatus.PAID: "Oplacona",
    InvoiceStatus.OVERDUE: "Przeterminowana",
    InvoiceStatus.CANCELLED: "Anulowana",
}

PAYMENT_METHOD_LABELS = {
    PaymentMethod.TRANSFER: "Przelew",
    PaymentMethod.CASH: "Gotowka",
    PaymentMethod.CARD: "Karta",
}


class Invoice(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """Sales invoice issued to a contractor."""

    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("tenant_id", "invoice_number", name="uq_invoices_tenant_number"),)

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    type: Mapped[InvoiceType] = mapped_column(Enum(InvoiceType), default=InvoiceType.SINGLE, nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus),
        default=InvoiceStatus.DRAFT,
        index=True,
        nullable=False,
    )

    contractor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("contractors.id", ondelete="SET NULL"), index=True, nullable=True
    )

    issue_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    sale_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod),
        default=PaymentMethod.TRANSFER,
        nullable=False,
    )
    bank_account: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    currency: Mapped[str] = mapped_column(String(3), default="PLN", nullable=False)
    exchange_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    exchange_rate_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Totals (sum of items)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Payment
    paid_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    paid_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} ({self.status.value})>"

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID


class InvoiceItem(Base, UUIDMixin):
    """Invoice line."""

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="szt.", nullable=False)
    unit_price_net: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    vat_rate: Mapped[float] = mapped_column(Float, default=23.0, nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")
