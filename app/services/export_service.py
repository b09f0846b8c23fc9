"""
Finance export for accounting software.

Formats:
- CSV: ``;``-delimited, UTF-8 with BOM (opens directly in Excel)
- XML: Polish element names (EksportFaktur, EksportKosztow, RozliczenieOkresowe)
- JSON

Formatting works on plain row dicts so it can be tested without a database;
``build_export`` loads the rows for a tenant and picks the formatter.
"""
import csv
import io
import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Literal, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationException
from app.models.contractor import Contractor
from app.models.cost import COST_CATEGORY_LABELS, Cost, CostCategory
from app.models.driver import Driver
from app.models.invoice import Invoice, InvoiceStatus
from app.models.order import Order
from app.models.vehicle import Vehicle
from app.services.money import ZERO, json_default, sum_money

logger = logging.getLogger(__name__)

ExportType = Literal["invoices", "costs", "settlement"]
ExportFormat = Literal["csv", "xml", "json"]

CSV_DELIMITER = ";"
BOM = "\ufeff"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xml": "application/xml; charset=utf-8",
    "json": "application/json; charset=utf-8",
}

FILE_PREFIXES = {
    "invoices": "faktury",
    "costs": "koszty",
    "settlement": "rozliczenie",
}

INVOICE_CSV_HEADERS = [
    "Numer faktury",
    "Data wystawienia",
    "Data sprzedazy",
    "Termin platnosci",
    "Kontrahent - Nazwa",
    "Kontrahent - NIP",
    "Kontrahent - Adres",
    "Kontrahent - Miasto",
    "Kontrahent - Kod pocztowy",
    "Numer zlecenia",
    "Trasa",
    "Netto",
    "VAT",
    "Brutto",
    "Waluta",
    "Status",
    "Uwagi",
]

COST_CSV_HEADERS = [
    "Data",
    "Kategoria",
    "Opis",
    "Kwota",
    "Waluta",
    "Pojazd",
    "Kierowca",
    "ID zlecenia",
    "Uwagi",
]


@dataclass
class ExportResult:
    filename: str
    content: str
    media_type: str
    record_count: int


# ============== Value formatting ==============

def format_amount(value: Optional[Decimal]) -> str:
    return f"{(value or 0):.2f}"


def format_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


def date_range_label(date_from: date, date_to: date) -> str:
    return f"{date_from:%Y%m%d}-{date_to:%Y%m%d}"


def export_filename(export_type: ExportType, export_format: ExportFormat, date_from: date, date_to: date) -> str:
    """``faktury-20240101-20240131.csv``"""
    return f"{FILE_PREFIXES[export_type]}-{date_range_label(date_from, date_to)}.{export_format}"


def category_label(category: Any) -> str:
    try:
        return COST_CATEGORY_LABELS[CostCategory(category)]
    except ValueError:
        return str(category)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _export_timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def write_csv(rows: Iterable[list[Any]]) -> str:
    """
    Semicolon-delimited CSV with a BOM.

    Values containing ``;``, ``"`` or a newline are quoted and quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=CSV_DELIMITER, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return BOM + buffer.getvalue()


def _xml_document(root: ET.Element) -> str:
    ET.indent(root, space="  ")
    return XML_DECLARATION + ET.tostring(root, encoding="unicode")


def _sub(parent: ET.Element, tag: str, text: Any = None, **attrib: str) -> ET.Element:
    element = ET.SubElement(parent, tag, attrib)
    if text is not None:
        element.text = str(text)
    return element


# ============== Invoices ==============

def _route(row: dict) -> str:
    if not row.get("order_number"):
        return ""
    return f"{row.get('origin_city') or ''} - {row.get('destination_city') or ''}"


def invoices_to_csv(rows: list[dict]) -> str:
    lines = [INVOICE_CSV_HEADERS]
    for r in rows:
        lines.append([
            r["invoice_number"],
            format_date(r.get("issue_date")),
            format_date(r.get("sale_date")),
            format_date(r.get("due_date")),
            r.get("contractor_name"),
            r.get("contractor_nip"),
            r.get("contractor_address"),
            r.get("contractor_city"),
            r.get("contractor_postal_code"),
            r.get("order_number"),
            _route(r),
            format_amount(r.get("net_amount")),
            format_amount(r.get("vat_amount")),
            format_amount(r.get("gross_amount")),
            r.get("currency"),
            _enum_value(r.get("status")),
            r.get("notes"),
        ])
    return write_csv(lines)


def invoices_to_xml(rows: list[dict], date_from: date, date_to: date) -> str:
    root = ET.Element("EksportFaktur")
    _sub(root, "DataEksportu", _export_timestamp())
    _sub(root, "OkresOd", format_date(date_from))
    _sub(root, "OkresDo", format_date(date_to))
    _sub(root, "LiczbaFaktur", len(rows))
    invoices = _sub(root, "Faktury")
    for r in rows:
        inv = _sub(invoices, "Faktura")
        _sub(inv, "NumerFaktury", r["invoice_number"])
        _sub(inv, "DataWystawienia", format_date(r.get("issue_date")))
        _sub(inv, "DataSprzedazy", format_date(r.get("sale_date")))
        _sub(inv, "TerminPlatnosci", format_date(r.get("due_date")))
        contractor = _sub(inv, "Kontrahent")
        _sub(contractor, "Nazwa", r.get("contractor_name") or "")
        _sub(contractor, "NIP", r.get("contractor_nip") or "")
        _sub(contractor, "Adres", r.get("contractor_address") or "")
        _sub(contractor, "Miasto", r.get("contractor_city") or "")
        _sub(contractor, "KodPocztowy", r.get("contractor_postal_code") or "")
        _sub(inv, "NumerZlecenia", r.get("order_number") or "")
        _sub(inv, "KwotaNetto", format_amount(r.get("net_amount")))
        _sub(inv, "KwotaVAT", format_amount(r.get("vat_amount")))
        _sub(inv, "KwotaBrutto", format_amount(r.get("gross_amount")))
        _sub(inv, "Waluta", r.get("currency") or "")
        _sub(inv, "Status", _enum_value(r.get("status")))
    return _xml_document(root)


def invoices_to_json(rows: list[dict]) -> str:
    data = {
        "export_date": _export_timestamp(),
        "record_count": len(rows),
        "invoices": [
            {
                "invoice_number": r["invoice_number"],
                "issue_date": format_date(r.get("issue_date")),
                "sale_date": format_date(r.get("sale_date")),
                "due_date": format_date(r.get("due_date")),
                "contractor": {
                    "name": r.get("contractor_name"),
                    "nip": r.get("contractor_nip"),
                    "address": r.get("contractor_address"),
                    "city": r.get("contractor_city"),
                    "postal_code": r.get("contractor_postal_code"),
                },
                "order_number": r.get("order_number"),
                "route": _route(r) or None,
                "amounts": {
                    "net": r.get("net_amount"),
                    "vat": r.get("vat_amount"),
                    "gross": r.get("gross_amount"),
                },
                "currency": r.get("currency"),
                "status": _enum_value(r.get("status")),
            }
            for r in rows
        ],
    }
    return json.dumps(data, ensure_ascii=False, indent=2, default=json_default)


# ============== Costs ==============

def costs_to_csv(rows: list[dict]) -> str:
    lines = [COST_CSV_HEADERS]
    for r in rows:
        lines.append([
            format_date(r.get("date")),
            category_label(r.get("category")),
            r.get("description"),
            format_amount(r.get("amount")),
            r.get("currency"),
            r.get("vehicle_registration"),
            r.get("driver_name"),
            str(r["order_id"]) if r.get("order_id") else "",
            r.get("notes"),
        ])
    return write_csv(lines)


def costs_to_xml(rows: list[dict]) -> str:
    root = ET.Element("EksportKosztow")
    _sub(root, "DataEksportu", _export_timestamp())
    _sub(root, "LiczbaKosztow", len(rows))
    costs = _sub(root, "Koszty")
    for r in rows:
        cost = _sub(costs, "Koszt")
        _sub(cost, "Data", format_date(r.get("date")))
        _sub(cost, "Kategoria", _enum_value(r.get("category")))
        _sub(cost, "Opis", r.get("description") or "")
        _sub(cost, "Kwota", format_amount(r.get("amount")))
        _sub(cost, "Waluta", r.get("currency") or "")
        _sub(cost, "Pojazd", r.get("vehicle_registration") or "")
        _sub(cost, "Kierowca", r.get("driver_name") or "")
        _sub(cost, "IDZlecenia", str(r["order_id"]) if r.get("order_id") else "")
    return _xml_document(root)


def costs_to_json(rows: list[dict]) -> str:
    data = {
        "export_date": _export_timestamp(),
        "record_count": len(rows),
        "costs": [
            {
                "date": format_date(r.get("date")),
                "category": _enum_value(r.get("category")),
                "description": r.get("description"),
                "amount": r.get("amount"),
                "currency": r.get("currency"),
                "vehicle": r.get("vehicle_registration"),
                "driver": r.get("driver_name"),
                "order_id": str(r["order_id"]) if r.get("order_id") else None,
                "notes": r.get("notes"),
            }
            for r in rows
        ],
    }
    return json.dumps(data, ensure_ascii=False, indent=2, default=json_default)


# ============== Settlement ==============

def build_settlement(invoices: list[dict], costs: list[dict], date_from: date, date_to: date) -> dict:
    """Period summary: revenue from invoices, costs per category and profit."""
    paid = [i for i in invoices if _enum_value(i.get("status")) == InvoiceStatus.PAID.value]
    invoice_totals = {
        "count": len(invoices),
        "net": sum_money(i.get("net_amount") for i in invoices),
        "vat": sum_money(i.get("vat_amount") for i in invoices),
        "gross": sum_money(i.get("gross_amount") for i in invoices),
        "paid": len(paid),
        "unpaid": len(invoices) - len(paid),
    }

    by_category: dict[str, dict] = {}
    for c in costs:
        key = _enum_value(c.get("category"))
        bucket = by_category.setdefault(key, {"label": category_label(key), "count": 0, "amount": ZERO})
        bucket["count"] += 1
        bucket["amount"] = sum_money([bucket["amount"], c.get("amount")])

    cost_total = sum_money(c.get("amount") for c in costs)
    return {
        "period": {"from": format_date(date_from), "to": format_date(date_to)},
        "invoices": invoice_totals,
        "costs": {"count": len(costs), "amount": cost_total, "by_category": by_category},
        "profit": {
            "net": invoice_totals["net"] - cost_total,
            "gross": invoice_totals["gross"] - cost_total,
        },
    }


def settlement_to_csv(settlement: dict) -> str:
    inv = settlement["invoices"]
    costs = settlement["costs"]
    lines: list[list[Any]] = [
        ["ROZLICZENIE OKRESOWE"],
        ["Okres", settlement["period"]["from"], settlement["period"]["to"]],
        [],
        ["PRZYCHODY (FAKTURY)"],
        ["Liczba faktur", inv["count"]],
        ["Oplacone", inv["paid"]],
        ["Nieoplacone", inv["unpaid"]],
        ["Suma netto", format_amount(inv["net"])],
        ["Suma VAT", format_amount(inv["vat"])],
        ["Suma brutto", format_amount(inv["gross"])],
        [],
        ["KOSZTY"],
        ["Liczba kosztow", costs["count"]],
        ["Suma", format_amount(costs["amount"])],
        [],
        ["KOSZTY WG KATEGORII"],
        ["Kategoria", "Liczba", "Kwota"],
    ]
    for bucket in costs["by_category"].values():
        lines.append([bucket["label"], bucket["count"], format_amount(bucket["amount"])])
    lines += [
        [],
        ["WYNIK"],
        ["Zysk netto (przychody netto - koszty)", format_amount(settlement["profit"]["net"])],
        ["Zysk brutto (przychody brutto - koszty)", format_amount(settlement["profit"]["gross"])],
    ]
    return write_csv(lines)


def settlement_to_xml(settlement: dict) -> str:
    inv = settlement["invoices"]
    costs = settlement["costs"]
    root = ET.Element("RozliczenieOkresowe")
    _sub(root, "DataEksportu", _export_timestamp())
    period = _sub(root, "Okres")
    _sub(period, "Od", settlement["period"]["from"])
    _sub(period, "Do", settlement["period"]["to"])
    invoices = _sub(root, "Faktury")
    _sub(invoices, "Liczba", inv["count"])
    _sub(invoices, "Oplacone", inv["paid"])
    _sub(invoices, "Nieoplacone", inv["unpaid"])
    _sub(invoices, "SumaNetto", format_amount(inv["net"]))
    _sub(invoices, "SumaVAT", format_amount(inv["vat"]))
    _sub(invoices, "SumaBrutto", format_amount(inv["gross"]))
    cost_el = _sub(root, "Koszty")
    _sub(cost_el, "Liczba", costs["count"])
    _sub(cost_el, "Suma", format_amount(costs["amount"]))
    categories = _sub(cost_el, "WgKategorii")
    for key, bucket in costs["by_category"].items():
        category = _sub(categories, "Kategoria", nazwa=key)
        _sub(category, "Liczba", bucket["count"])
        _sub(category, "Kwota", format_amount(bucket["amount"]))
    result = _sub(root, "Wynik")
    _sub(result, "ZyskNetto", format_amount(settlement["profit"]["net"]))
    _sub(result, "ZyskBrutto", format_amount(settlement["profit"]["gross"]))
    return _xml_document(root)


def settlement_to_json(settlement: dict) -> str:
    return json.dumps(
        {"export_date": _export_timestamp(), **settlement}, ensure_ascii=False, indent=2, default=json_default
    )


# ============== Loading ==============

async def load_invoice_rows(
    db: AsyncSession,
    tenant_id: UUID,
    date_from: date,
    date_to: date,
    status: Optional[InvoiceStatus] = None,
    contractor_id: Optional[UUID] = None,
) -> list[dict]:
    query = (
        select(Invoice, Contractor)
        .outerjoin(Contractor, Invoice.contractor_id == Contractor.id)
        .where(
            Invoice.tenant_id == tenant_id,
            Invoice.issue_date >= date_from,
            Invoice.issue_date <= date_to,
        )
        .order_by(Invoice.issue_date, Invoice.invoice_number)
    )
    if status is not None:
        query = query.where(Invoice.status == status)
    if contractor_id is not None:
        query = query.where(Invoice.contractor_id == contractor_id)
    result = await db.execute(query)
    pairs = result.all()

    # First linked order per invoice
    first_orders: dict[UUID, Order] = {}
    invoice_ids = [inv.id for inv, _ in pairs]
    if invoice_ids:
        orders = await db.execute(
            select(Order)
            .where(Order.invoice_id.in_(invoice_ids))
            .order_by(Order.loading_date, Order.order_number)
        )
        for order in orders.scalars().all():
            first_orders.setdefault(order.invoice_id, order)

    rows = []
    for inv, contractor in pairs:
        order = first_orders.get(inv.id)
        rows.append({
            "invoice_number": inv.invoice_number,
            "issue_date": inv.issue_date,
            "sale_date": inv.sale_date,
            "due_date": inv.due_date,
            "contractor_name": contractor.name if contractor else None,
            "contractor_nip": contractor.nip if contractor else None,
            "contractor_address": contractor.address if contractor else None,
            "contractor_city": contractor.city if contractor else None,
            "contractor_postal_code": contractor.postal_code if contractor else None,
            "order_number": order.order_number if order else None,
            "origin_city": order.origin_city if order else None,
            "destination_city": order.destination_city if order else None,
            "net_amount": inv.net_amount,
            "vat_amount": inv.vat_amount,
            "gross_amount": inv.gross_amount,
            "currency": inv.currency,
            "status": inv.status,
            "notes": inv.notes,
        })
    return rows


async def load_cost_rows(db: AsyncSession, tenant_id: UUID, date_from: date, date_to: date) -> list[dict]:
    query = (
        select(Cost, Vehicle.registration_number, Driver.first_name, Driver.last_name)
        .outerjoin(Vehicle, Cost.vehicle_id == Vehicle.id)
        .outerjoin(Driver, Cost.driver_id == Driver.id)
        .where(Cost.tenant_id == tenant_id, Cost.date >= date_from, Cost.date <= date_to)
        .order_by(Cost.date)
    )
    result = await db.execute(query)
    return [
        {
            "date": cost.date,
            "category": cost.category,
            "description": cost.description,
            "amount": cost.amount,
            "currency": cost.currency,
            "vehicle_registration": registration,
            "driver_name": f"{first_name} {last_name}" if first_name else None,
            "order_id": cost.order_id,
            "notes": cost.notes,
        }
        for cost, registration, first_name, last_name in result.all()
    ]


async def build_export(
    db: AsyncSession,
    tenant_id: UUID,
    export_type: ExportType,
    export_format: ExportFormat,
    date_from: date,
    date_to: date,
    status: Optional[InvoiceStatus] = None,
    contractor_id: Optional[UUID] = None,
) -> ExportResult:
    """Load the tenant's rows for the period and render them."""
    if date_from > date_to:
        raise ValidationException("Data poczatkowa nie moze byc pozniejsza niz koncowa")

    filename = export_filename(export_type, export_format, date_from, date_to)

    if export_type == "invoices":
        rows = await load_invoice_rows(db, tenant_id, date_from, date_to, status, contractor_id)
        if not rows:
            raise ValidationException("Brak faktur do eksportu w podanym zakresie")
        content = {
            "csv": lambda: invoices_to_csv(rows),
            "xml": lambda: invoices_to_xml(rows, date_from, date_to),
            "json": lambda: invoices_to_json(rows),
        }[export_format]()
        count = len(rows)
    elif export_type == "costs":
        rows = await load_cost_rows(db, tenant_id, date_from, date_to)
        if not rows:
            raise ValidationException("Brak kosztow do eksportu w podanym zakresie")
        content = {"csv": costs_to_csv, "xml": costs_to_xml, "json": costs_to_json}[export_format](rows)
        count = len(rows)
    else:
        invoices = await load_invoice_rows(db, tenant_id, date_from, date_to)
        costs = await load_cost_rows(db, tenant_id, date_from, date_to)
        settlement = build_settlement(invoices, costs, date_from, date_to)
        content = {
            "csv": settlement_to_csv,
            "xml": settlement_to_xml,
            "json": settlement_to_json,
        }[export_format](settlement)
        count = len(invoices) + len(costs)

    logger.info(f"Export {export_type}/{export_format}: {count} records, {len(content)} chars")
    return ExportResult(
        filename=filename,
        content=content,
        media_type=MEDIA_TYPES[export_format],
        record_count=count,
    )
