"""
Internal notes board: announcements, private messages, entity notes.
"""
import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin, utcnow


class NoteType(str, enum.Enum):
    GENERAL = "GENERAL"
    ANNOUNCEMENT = "ANNOUNCEMENT"  # Admin-only broadcast
    PRIVATE = "PRIVATE"  # Author and recipients only
    ENTITY_LINKED = "ENTITY_LINKED"  # Attached to an order, vehicle, ...


class NotePriority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NoteCategory(str, enum.Enum):
    GENERAL = "GENERAL"
    FLEET = "FLEET"
    CLIENTS = "CLIENTS"
    FINANCE = "FINANCE"
    OPERATIONS = "OPERATIONS"
    OTHER = "OTHER"


class Note(Base, UUIDMixin, TimestampMixin, TenantMixin):
    __tablename__ = "notes"

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NoteType] = mapped_column(Enum(NoteType), default=NoteType.GENERAL, nullable=False)
    priority: Mapped[NotePriority] = mapped_column(Enum(NotePriority), default=NotePriority.NORMAL, nullable=False)
    category: Mapped[NoteCategory] = mapped_column(Enum(NoteCategory), default=NoteCategory.GENERAL, nullable=False)

    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ENTITY_LINKED target, e.g. ("order", <uuid>)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True, nullable=True)

    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class NoteRecipient(Base, UUIDMixin):
    __tablename__ = "note_recipients"
    __table_args__ = (UniqueConstraint("note_id", "user_id", name="uq_note_recipients"),)

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )


class NoteRead(Base, UUIDMixin):
    __tablename__ = "note_reads"
    __table_args__ = (UniqueConstraint("note_id", "user_id", name="uq_note_reads"),)

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    read_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class NoteReaction(Base, UUIDMixin):
    __tablename__ = "note_reactions"
    __table_args__ = (UniqueConstraint("note_id", "user_id", "emoji", name="uq_note_reactions"),)

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    emoji: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class NoteComment(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "note_comments"

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
