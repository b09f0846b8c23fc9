"""
Webhook subscription and delivery log models.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin, utcnow


WEBHOOK_EVENTS = {
    "order.created": "Zlecenie utworzone",
    "order.updated": "Zlecenie zaktualizowane",
    "order.status_changed": "Zmiana statusu zlecenia",
    "order.assignment_created": "Przypisanie utworzone",
    "order.assignment_updated": "Przypisanie zaktualizowane",
    "order.assignment_deleted": "Przypisanie usuniete",
    "invoice.created": "Faktura utworzona",
    "invoice.paid": "Faktura oplacona",
    "vehicle.updated": "Pojazd zaktualizowany",
    "driver.updated": "Kierowca zaktualizowany",
}


class WebhookSubscription(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Subscription for event notifications.
    """
    __tablename__ = "webhook_subscriptions"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    secret: Mapped[str] = mapped_column(String(100), nullable=False)  # For HMAC signature

    # JSON list keeps the model portable between PostgreSQL and SQLite
    events: Mapped[list[str]] = mapped_column(JSON, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self):
        return f"<Webhook {self.name} ({self.url})>"


class WebhookDelivery(Base, UUIDMixin):
    """Outcome of delivering one event to one subscription."""

    __tablename__ = "webhook_deliveries"

    webhook_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("webhook_subscriptions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    event: Mapped[str] = mapped_column(String(50), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
