"""
Document model (scans, certificates, CMR copies).
"""
import enum
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Date, Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import TenantMixin, TimestampMixin, UUIDMixin


class DocumentType(str, enum.Enum):
    # Vehicle
    VEHICLE_REGISTRATION = "VEHICLE_REGISTRATION"
    VEHICLE_INSURANCE_OC = "VEHICLE_INSURANCE_OC"
    VEHICLE_INSURANCE_AC = "VEHICLE_INSURANCE_AC"
    VEHICLE_INSPECTION = "VEHICLE_INSPECTION"
    TACHOGRAPH_CALIBRATION = "TACHOGRAPH_CALIBRATION"
    # Driver
    DRIVER_LICENSE = "DRIVER_LICENSE"
    DRIVER_ADR = "DRIVER_ADR"
    DRIVER_MEDICAL = "DRIVER_MEDICAL"
    DRIVER_PSYCHO = "DRIVER_PSYCHO"
    DRIVER_QUALIFICATION = "DRIVER_QUALIFICATION"
    # Company
    COMPANY_LICENSE = "COMPANY_LICENSE"
    COMPANY_INSURANCE = "COMPANY_INSURANCE"
    COMPANY_CERTIFICATE = "COMPANY_CERTIFICATE"
    # Order
    CMR = "CMR"
    DELIVERY_NOTE = "DELIVERY_NOTE"
    OTHER = "OTHER"


DOCUMENT_TYPE_LABELS = {
    DocumentType.VEHICLE_REGISTRATION: "Dowód rejestracyjny",
    DocumentType.VEHICLE_INSURANCE_OC: "Ubezpieczenie OC",
    DocumentType.VEHICLE_INSURANCE_AC: "Ubezpieczenie AC",
    DocumentType.VEHICLE_INSPECTION: "Przegląd techniczny",
    DocumentType.TACHOGRAPH_CALIBRATION: "Kalibracja tachografu",
    DocumentType.DRIVER_LICENSE: "Prawo jazdy",
    DocumentType.DRIVER_ADR: "Zaświadczenie ADR",
    DocumentType.DRIVER_MEDICAL: "Badania lekarskie",
    DocumentType.DRIVER_PSYCHO: "Badania psychologiczne",
    DocumentType.DRIVER_QUALIFICATION: "Kwalifikacja zawodowa",
    DocumentType.COMPANY_LICENSE: "Licencja transportowa",
    DocumentType.COMPANY_INSURANCE: "Ubezpieczenie firmowe",
    DocumentType.COMPANY_CERTIFICATE: "Certyfikat firmowy",
    DocumentType.CMR: "List przewozowy CMR",
    DocumentType.DELIVERY_NOTE: "Dokument dostawy",
    DocumentType.OTHER: "Inny",
}


class Document(Base, UUIDMixin, TimestampMixin, TenantMixin):
    """
    Stored file with optional expiry date, linked to at most one of
    vehicle, trailer, driver or order. Unlinked documents belong to the company.
    """

    __tablename__ = "documents"

    type: Mapped[DocumentType] = mapped_column(Enum(DocumentType), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    file_url: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    expiry_date: Mapped[Optional[date]] = mapped_column(Date, index=True, nullable=True)

    vehicle_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("vehicles.id", ondelete="CASCADE"), index=True, nullable=True
    )
    trailer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("trailers.id", ondelete="CASCADE"), index=True, nullable=True
    )
    driver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("drivers.id", ondelete="CASCADE"), index=True, nullable=True
    )
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=True
    )

    uploaded_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Document {self.type.value} {self.name}>"
