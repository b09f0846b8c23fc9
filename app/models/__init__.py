"""
Database models.
"""
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin
from app.models.tenant import Tenant
from app.models.user import User, UserRole
from app.models.driver import Driver, DriverStatus, EmploymentType
from app.models.vehicle import FuelType, Trailer, TrailerType, Vehicle, VehicleStatus, VehicleType
from app.models.contractor import Contractor, ContractorType
from app.models.order import (
    AssignmentReason,
    Order,
    OrderAssignment,
    OrderLocation,
    OrderPhoto,
    OrderStatus,
    OrderType,
    OrderWaypoint,
    WaypointType,
)
from app.models.invoice import Invoice, InvoiceItem, InvoiceStatus, InvoiceType, PaymentMethod
from app.models.cost import Cost, CostCategory
from app.models.document import Document, DocumentType
from app.models.note import (
    Note,
    NoteCategory,
    NoteComment,
    NotePriority,
    NoteReaction,
    NoteRead,
    NoteRecipient,
    NoteType,
)
from app.models.audit_log import AuditAction, AuditLog
from app.models.webhook import WebhookDelivery, WebhookSubscription
from app.models.push_token import PushToken

__all__ = [
    "TenantMixin",
    "TimestampMixin",
    "UUIDMixin",
    "Tenant",
    "User",
    "UserRole",
    "Driver",
    "DriverStatus",
    "EmploymentType",
    "Vehicle",
    "VehicleStatus",
    "VehicleType",
    "FuelType",
    "Trailer",
    "TrailerType",
    "Contractor",
    "ContractorType",
    "Order",
    "OrderStatus",
    "OrderType",
    "OrderWaypoint",
    "WaypointType",
    "OrderAssignment",
    "AssignmentReason",
    "OrderPhoto",
    "OrderLocation",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "InvoiceType",
    "PaymentMethod",
    "Cost",
    "CostCategory",
    "Document",
    "DocumentType",
    "Note",
    "NoteType",
    "NotePriority",
    "NoteCategory",
    "NoteRecipient",
    "NoteRead",
    "NoteReaction",
    "NoteComment",
    "AuditAction",
    "AuditLog",
    "WebhookSubscription",
    "WebhookDelivery",
    "PushToken",
]
