"""
CSV import of drivers, vehicles and contractors.

Rows are validated one at a time with the same schemas the API uses;
invalid rows and duplicates are skipped and reported with their line
number (the header is line 1), the rest is imported.
"""
import csv
import io
import logging
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.contractor import Contractor
from app.models.driver import Driver
from app.models.vehicle import Vehicle
from app.schemas.contractor import ContractorCreate
from app.schemas.driver import DriverCreate
from app.schemas.import_export import ImportResult, ImportRowError, ImportType
from app.schemas.vehicle import VehicleCreate

logger = logging.getLogger(__name__)

EXPECTED_COLUMNS: dict[str, dict[str, list[str]]] = {
    "drivers": {
        "required": ["first_name", "last_name"],
        "optional": [
            "pesel",
            "phone",
            "email",
            "address",
            "city",
            "postal_code",
            "employment_type",
            "employment_date",
            "license_number",
            "license_expiry",
            "license_categories",
            "adr_number",
            "adr_expiry",
            "adr_classes",
            "medical_expiry",
            "notes",
        ],
    },
    "vehicles": {
        "required": ["registration_number", "type"],
        "optional": [
            "brand",
            "model",
            "vin",
            "year",
            "load_capacity",
            "volume",
            "euro_class",
            "fuel_type",
            "notes",
        ],
    },
    "contractors": {
        "required": ["name", "type"],
        "optional": [
            "short_name",
            "nip",
            "regon",
            "address",
            "city",
            "postal_code",
            "country",
            "phone",
            "email",
            "website",
            "contact_person",
            "contact_phone",
            "contact_email",
            "payment_days",
            "credit_limit",
            "notes",
        ],
    },
}

CSV_TEMPLATES: dict[str, str] = {
    "drivers": (
        "first_name;last_name;pesel;phone;email;address;city;postal_code;employment_type;"
        "license_number;license_expiry;license_categories;adr_number;adr_expiry;medical_expiry;notes\n"
        "Jan;Kowalski;90010112345;+48600111222;jan.kowalski@email.pl;ul. Przykladowa 1;Warszawa;00-001;"
        "EMPLOYMENT;ABC123456;2027-12-31;C,CE;ADR123;2027-06-30;2027-03-15;Doswiadczony kierowca\n"
        "Anna;Nowak;85050567890;+48600333444;anna.nowak@email.pl;ul. Testowa 5;Krakow;30-001;"
        "B2B;XYZ789012;2028-06-30;C,CE,D;;;2027-09-20;\n"
    ),
    "vehicles": (
        "registration_number;type;brand;model;vin;year;load_capacity;volume;euro_class;fuel_type;notes\n"
        "WI12345;TRUCK;Volvo;FH16;YV2RT40A5XA123456;2022;24000;90;EURO6;DIESEL;Ciagnik siodlowy\n"
        "WA67890;SOLO;Mercedes;Actros;WDB9340321L123456;2021;12000;45;EURO6;DIESEL;Solowka\n"
    ),
    "contractors": (
        "name;type;short_name;nip;regon;address;city;postal_code;country;phone;email;"
        "contact_person;payment_days;notes\n"
        "Firma Transportowa ABC;CLIENT;ABC;1234567890;123456789;ul. Handlowa 10;Warszawa;00-100;PL;"
        "+48221234567;kontakt@abc.pl;Jan Klient;14;Staly klient\n"
        "Przewoznik XYZ;CARRIER;XYZ;0987654321;987654321;ul. Logistyczna 5;Lodz;90-001;PL;"
        "+48426543210;biuro@xyz.pl;Anna Przewoznik;21;Podwykonawca\n"
    ),
}

SCHEMAS: dict[str, type[BaseModel]] = {
    "drivers": DriverCreate,
    "vehicles": VehicleCreate,
    "contractors": ContractorCreate,
}

# Polish messages for enum columns, keyed by (import type, column)
ENUM_MESSAGES = {
    ("drivers", "employment_type"): "Nieprawidlowy typ zatrudnienia (EMPLOYMENT/B2B/CONTRACT)",
    ("vehicles", "type"): "Nieprawidlowy typ pojazdu (TRUCK/BUS/SOLO/TRAILER/CAR)",
    ("vehicles", "fuel_type"): "Nieprawidlowy typ paliwa",
    ("contractors", "type"): "Nieprawidlowy typ kontrahenta (CLIENT/CARRIER/BOTH)",
}


def parse_csv(content: str) -> list[dict[str, str]]:
    """``;``-delimited CSV with a header row; headers and values are trimmed."""
    content = content.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(content), delimiter=";")
    if reader.fieldnames is None:
        return []
    reader.fieldnames = [name.strip() for name in reader.fieldnames]

    rows = []
    for raw in reader:
        row = {
            key: (value or "").strip()
            for key, value in raw.items()
            if key is not None
        }
        if any(row.values()):
            rows.append(row)
    return rows


def _error_message(import_type: str, field: str, error: dict) -> str:
    if (import_type, field) in ENUM_MESSAGES:
        return ENUM_MESSAGES[(import_type, field)]
    error_type = error.get("type", "")
    if error_type.startswith("date"):
        return "Nieprawidlowy format daty (YYYY-MM-DD)"
    if "email" in field:
        return "Nieprawidlowy format email"
    if error_type in ("int_parsing", "float_parsing", "decimal_parsing"):
        return "Nieprawidlowa wartosc liczbowa"
    message = error.get("msg", "Nieprawidlowa wartosc")
    return message.removeprefix("Value error, ")


def validate_row(
    row: dict[str, str],
    import_type: ImportType,
    row_number: int,
) -> tuple[Optional[BaseModel], list[ImportRowError]]:
    """Return the parsed schema object or the list of row errors."""
    errors = [
        ImportRowError(row=row_number, field=field, message=f"Brak wymaganego pola: {field}")
        for field in EXPECTED_COLUMNS[import_type]["required"]
        if not row.get(field)
    ]
    if errors:
        return None, errors

    known = set(EXPECTED_COLUMNS[import_type]["required"]) | set(EXPECTED_COLUMNS[import_type]["optional"])
    values = {key: value for key, value in row.items() if key in known and value != ""}
    try:
        return SCHEMAS[import_type].model_validate(values), []
    except ValidationError as exc:
        for err in exc.errors():
            loc = err.get("loc") or ()
            field = str(loc[0]) if loc else None
            errors.append(
                ImportRowError(
                    row=row_number,
                    field=field,
                    message=_error_message(import_type, field or "", err),
                )
            )
        return None, errors


async def _existing_keys(db: AsyncSession, import_type: ImportType, tenant_id: UUID) -> set[Any]:
    """Business keys already present in the tenant, used to skip duplicates."""
    keys: set[Any] = set()
    if import_type == "drivers":
        result = await db.execute(
            select(Driver.pesel, Driver.first_name, Driver.last_name).where(Driver.tenant_id == tenant_id)
        )
        for pesel, first_name, last_name in result.all():
            if pesel:
                keys.add(("pesel", pesel))
            keys.add(("name", first_name.lower(), last_name.lower()))
    elif import_type == "vehicles":
        result = await db.execute(select(Vehicle.registration_number).where(Vehicle.tenant_id == tenant_id))
        keys.update(("registration", reg) for reg in result.scalars().all())
    else:
        result = await db.execute(select(Contractor.nip, Contractor.name).where(Contractor.tenant_id == tenant_id))
        for nip, name in result.all():
            if nip:
                keys.add(("nip", nip))
            keys.add(("name", name.lower()))
    return keys


def _duplicate_key(import_type: ImportType, data: BaseModel) -> tuple:
    """Key a row is matched on: PESEL or name, registration, NIP or name."""
    if import_type == "drivers":
        if data.pesel:
            return ("pesel", data.pesel)
        return ("name", data.first_name.lower(), data.last_name.lower())
    if import_type == "vehicles":
        return ("registration", data.registration_number)
    if data.nip:
        return ("nip", data.nip)
    return ("name", data.name.lower())


def _duplicate_message(import_type: ImportType, data: BaseModel) -> str:
    if import_type == "drivers":
        return f"Kierowca juz istnieje: {data.first_name} {data.last_name}"
    if import_type == "vehicles":
        return f"Pojazd juz istnieje: {data.registration_number}"
    return f"Kontrahent juz istnieje: {data.name}"


def _build_entity(import_type: ImportType, data: BaseModel, tenant_id: UUID):
    values = data.model_dump()
    if import_type == "drivers":
        values.pop("current_vehicle_id", None)
        return Driver(tenant_id=tenant_id, **values)
    if import_type == "vehicles":
        values.pop("current_driver_id", None)
        values.pop("current_trailer_id", None)
        return Vehicle(tenant_id=tenant_id, **values)
    return Contractor(tenant_id=tenant_id, **values)


async def import_csv(
    db: AsyncSession,
    tenant_id: UUID,
    import_type: ImportType,
    content: str,
) -> ImportResult:
    """
    Validate and stage the rows of ``content``; the caller commits.

    Returns counts and per-row errors. An empty file is reported as a
    single error on row 0.
    """
    rows = parse_csv(content)
    if not rows:
        return ImportResult(
            success=False,
            imported=0,
            skipped=0,
            errors=[ImportRowError(row=0, message="Plik CSV jest pusty")],
            message="Plik CSV jest pusty",
        )

    existing = await _existing_keys(db, import_type, tenant_id)
    imported = 0
    skipped = 0
    errors: list[ImportRowError] = []

    for index, row in enumerate(rows):
        row_number = index + 2  # header is row 1
        data, row_errors = validate_row(row, import_type, row_number)
        if data is None:
            errors.extend(row_errors)
            skipped += 1
            continue

        key = _duplicate_key(import_type, data)
        if key in existing:
            errors.append(ImportRowError(row=row_number, message=_duplicate_message(import_type, data)))
            skipped += 1
            continue

        db.add(_build_entity(import_type, data, tenant_id))
        existing.add(key)
        imported += 1

    success = not errors
    if success:
        message = f"Zaimportowano {imported} rekordow"
    else:
        message = f"Zaimportowano {imported} rekordow, pominieto {skipped}"
    logger.info(f"CSV import {import_type}: imported={imported}, skipped={skipped}, tenant={tenant_id}")

    return ImportResult(success=success, imported=imported, skipped=skipped, errors=errors, message=message)
