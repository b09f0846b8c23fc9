"""
PDF export service for CMR consignment notes and invoices.
"""

import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm, mm
from reportlab.platypus import (
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from app.models.invoice import PAYMENT_METHOD_LABELS, InvoiceType, PaymentMethod

INVOICE_TITLES = {
    InvoiceType.SINGLE: "Faktura VAT",
    InvoiceType.COLLECTIVE: "Faktura VAT zbiorcza",
    InvoiceType.PROFORMA: "Faktura proforma",
    InvoiceType.CORRECTION: "Faktura korygujaca",
}


def _fmt_date(value: Optional[date]) -> str:
    return value.strftime("%d.%m.%Y") if value else "-"


def _fmt_money(value: Optional[Decimal], currency: str = "PLN") -> str:
    if value is None:
        return "-"
    # Polish notation: space thousands separator, comma decimals
    amount = f"{value:,.2f}".replace(",", " ").replace(".", ",")
    return f"{amount} {currency}" if currency else amount


def _party_lines(party: Optional[dict[str, Any]]) -> list[str]:
    """Name, address and tax id of a tenant or contractor dict."""
    if not party:
        return ["-"]
    lines = [party.get("name") or "-"]
    if party.get("address"):
        lines.append(party["address"])
    city = " ".join(p for p in (party.get("postal_code"), party.get("city")) if p)
    if city or party.get("country"):
        lines.append(", ".join(p for p in (city, party.get("country")) if p))
    if party.get("nip"):
        lines.append(f"NIP: {party['nip']}")
    if party.get("phone"):
        lines.append(f"Tel: {party['phone']}")
    return lines


class PDFExporter:
    """Render transport documents to PDF."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_styles()

    def _setup_styles(self):
        """Setup custom styles."""
        self.styles.add(
            ParagraphStyle(
                name="Title_Custom",
                parent=self.styles["Title"],
                fontSize=18,
                spaceAfter=10,
            )
        )
        self.styles.add(
            ParagraphStyle(
                name="Subtitle",
                parent=self.styles["Normal"],
                fontSize=10,
                textColor=colors.gray,
                spaceAfter=6,
            )
        )
        self.styles.add(
            ParagraphStyle(
                name="BoxTitle",
                parent=self.styles["Normal"],
                fontSize=7,
                textColor=colors.HexColor("#666666"),
                leading=9,
            )
        )
        self.styles.add(
            ParagraphStyle(
                name="BoxText",
                parent=self.styles["Normal"],
                fontSize=8,
                leading=10,
            )
        )
        self.styles.add(
            ParagraphStyle(
                name="RightAligned",
                parent=self.styles["Normal"],
                fontSize=9,
                alignment=TA_RIGHT,
            )
        )
        self.styles.add(
            ParagraphStyle(
                name="Footer",
                parent=self.styles["Normal"],
                fontSize=7,
                textColor=colors.gray,
                alignment=TA_CENTER,
            )
        )

    def _box(self, number: Optional[int], title: str, lines: list[str]) -> list:
        """Numbered CMR field: small caption followed by its content."""
        caption = f"<b>{number}.</b> {title}" if number else title
        content = "<br/>".join(lines) if lines else "-"
        return [
            Paragraph(caption, self.styles["BoxTitle"]),
            Paragraph(content, self.styles["BoxText"]),
        ]

    def export_cmr(
        self,
        order: dict[str, Any],
        sender: Optional[dict[str, Any]],
        carrier: Optional[dict[str, Any]],
        driver: Optional[dict[str, Any]] = None,
        vehicle: Optional[dict[str, Any]] = None,
        trailer: Optional[dict[str, Any]] = None,
    ) -> bytes:
        """
        Export CMR international consignment note.

        Args:
            order: Order fields (number, route, dates, cargo)
            sender: Contractor ordering the transport
            carrier: Tenant performing the transport
            driver: Driver name and phone
            vehicle: Vehicle registration, brand and model
            trailer: Trailer registration

        Returns:
            PDF file as bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=1.5 * cm,
            leftMargin=1.5 * cm,
            topMargin=1.5 * cm,
            bottomMargin=1.5 * cm,
        )

        elements = []

        header = Table(
            [[
                Paragraph("CMR", self.styles["Title_Custom"]),
                Paragraph(
                    f"<b>Nr zlecenia: {order['order_number']}</b>"
                    + (f"<br/>Nr zewnetrzny: {order['external_number']}" if order.get("external_number") else ""),
                    self.styles["RightAligned"],
                ),
            ]],
            colWidths=[9 * cm, 9 * cm],
        )
        header.setStyle(TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("LINEBELOW", (0, 0), (-1, 0), 1.5, colors.black),
        ]))
        elements.append(header)
        elements.append(Paragraph("Miedzynarodowy samochodowy list przewozowy", self.styles["Subtitle"]))
        elements.append(Spacer(1, 4 * mm))

        loading_window = " - ".join(t for t in (order.get("loading_time_from"), order.get("loading_time_to")) if t)
        unloading_window = " - ".join(t for t in (order.get("unloading_time_from"), order.get("unloading_time_to")) if t)

        crew_lines = []
        if driver:
            crew_lines.append(f"Kierowca: {driver['first_name']} {driver['last_name']}")
            if driver.get("phone"):
                crew_lines.append(f"Tel: {driver['phone']}")
        if vehicle:
            make = " ".join(p for p in (vehicle.get("brand"), vehicle.get("model")) if p)
            crew_lines.append(f"Pojazd: {vehicle['registration_number']}" + (f" ({make})" if make else ""))
        if trailer:
            crew_lines.append(f"Naczepa: {trailer['registration_number']}")

        cells = [
            [
                self._box(1, "Nadawca (nazwa, adres, kraj)", _party_lines(sender)),
                self._box(16, "Przewoznik (nazwa, adres, kraj)", _party_lines(carrier)),
            ],
            [
                self._box(2, "Odbiorca (nazwa, adres, kraj)", [order["destination"], order.get("unloading_contact") or ""]),
                self._box(17, "Kolejni przewoznicy", crew_lines or ["-"]),
            ],
            [
                self._box(
                    3,
                    "Miejsce przeznaczenia przesylki",
                    [
                        ", ".join(p for p in (order["destination"], order.get("destination_city")) if p),
                        order.get("destination_country") or "",
                        f"Planowana data dostawy: {_fmt_date(order.get('unloading_date'))} {unloading_window}".strip(),
                    ],
                ),
                self._box(18, "Zastrzezenia i uwagi przewoznika", [order.get("notes") or "-"]),
            ],
            [
                self._box(
                    4,
                    "Miejsce i data zaladowania",
                    [
                        ", ".join(p for p in (order["origin"], order.get("origin_city")) if p),
                        order.get("origin_country") or "",
                        f"{_fmt_date(order.get('loading_date'))} {loading_window}".strip(),
                    ],
                ),
                self._box(13, "Instrukcje nadawcy", ["Towar ADR" if order.get("requires_adr") else "-"]),
            ],
            [
                self._box(5, "Zalaczone dokumenty", ["-"]),
                self._box(15, "Zaliczenie (pobranie)", ["-"]),
            ],
        ]

        grid = Table(cells, colWidths=[9 * cm, 9 * cm])
        grid.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.75, colors.black),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("PADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 10),
        ]))
        elements.append(grid)
        elements.append(Spacer(1, 4 * mm))

        # Cargo (fields 6-12)
        cargo_data = [
            ["Opis towaru", "Palety", "Waga brutto (kg)", "Objetosc (m3)"],
            [
                Paragraph(order.get("cargo_description") or "-", self.styles["BoxText"]),
                str(order.get("cargo_pallets") or "-"),
                f"{order['cargo_weight']:.0f}" if order.get("cargo_weight") else "-",
                f"{order['cargo_volume']:.1f}" if order.get("cargo_volume") else "-",
            ],
        ]
        cargo_table = Table(cargo_data, colWidths=[9 * cm, 3 * cm, 3 * cm, 3 * cm])
        cargo_table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f0f0f0")),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("ALIGN", (1, 0), (-1, -1), "CENTER"),
            ("GRID", (0, 0), (-1, -1), 0.75, colors.black),
            ("PADDING", (0, 0), (-1, -1), 4),
        ]))
        elements.append(cargo_table)
        elements.append(Spacer(1, 8 * mm))

        # Signatures (fields 22-24)
        signatures = Table(
            [[
                self._box(22, "Podpis i stempel nadawcy", ["", "", ""]),
                self._box(23, "Podpis i stempel przewoznika", ["", "", ""]),
                self._box(
                    24,
                    "Przesylke otrzymano",
                    [order.get("pod_recipient_name") or "", "", _fmt_date(order.get("pod_signed_at"))],
                ),
            ]],
            colWidths=[6 * cm, 6 * cm, 6 * cm],
            rowHeights=[3 * cm],
        )
        signatures.setStyle(TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.75, colors.black),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("PADDING", (0, 0), (-1, -1), 4),
        ]))
        elements.append(signatures)

        elements.append(Spacer(1, 10 * mm))
        elements.append(
            Paragraph(f"Wygenerowano: {datetime.now().strftime('%d.%m.%Y %H:%M')}", self.styles["Footer"])
        )

        doc.build(elements)
        return buffer.getvalue()

    def export_invoice(
        self,
        invoice: dict[str, Any],
        items: list[dict[str, Any]],
        seller: Optional[dict[str, Any]],
        buyer: Optional[dict[str, Any]],
    ) -> bytes:
        """
        Export invoice to PDF.

        Args:
            invoice: Invoice header fields and totals
            items: Invoice lines in position order
            seller: Issuing tenant
            buyer: Contractor

        Returns:
            PDF file as bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=2 * cm,
            leftMargin=2 * cm,
            topMargin=2 * cm,
            bottomMargin=2 * cm,
        )
        currency = invoice.get("currency") or "PLN"

        elements = []

        title = INVOICE_TITLES.get(invoice.get("type"), "Faktura VAT")
        elements.append(Paragraph(f"{title} nr {invoice['invoice_number']}", self.styles["Title_Custom"]))

        dates = Table(
            [
                ["Data wystawienia:", _fmt_date(invoice.get("issue_date"))],
                ["Data sprzedazy:", _fmt_date(invoice.get("sale_date") or invoice.get("issue_date"))],
                ["Termin platnosci:", _fmt_date(invoice.get("due_date"))],
            ],
            colWidths=[4 * cm, 4 * cm],
            hAlign="RIGHT",
        )
        dates.setStyle(TableStyle([
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ]))
        elements.append(dates)
        elements.append(Spacer(1, 6 * mm))

        parties = Table(
            [
                [Paragraph("<b>Sprzedawca</b>", self.styles["Normal"]), Paragraph("<b>Nabywca</b>", self.styles["Normal"])],
                [
                    Paragraph("<br/>".join(_party_lines(seller)), self.styles["BoxText"]),
                    Paragraph("<br/>".join(_party_lines(buyer)), self.styles["BoxText"]),
                ],
            ],
            colWidths=[8.5 * cm, 8.5 * cm],
        )
        parties.setStyle(TableStyle([
            ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("PADDING", (0, 0), (-1, -1), 4),
        ]))
        elements.append(parties)
        elements.append(Spacer(1, 8 * mm))

        table_data = [["Lp.", "Nazwa", "Ilosc", "J.m.", "Cena netto", "VAT", "Netto", "Brutto"]]
        for item in items:
            table_data.append([
                str(item["position"]),
                Paragraph(item["description"], self.styles["BoxText"]),
                f"{item['quantity']:g}",
                item.get("unit") or "",
                _fmt_money(item["unit_price_net"], ""),
                f"{item['vat_rate']:g}%",
                _fmt_money(item["net_amount"], ""),
                _fmt_money(item["gross_amount"], ""),
            ])

        items_table = Table(
            table_data,
            colWidths=[1 * cm, 5.5 * cm, 1.3 * cm, 1.2 * cm, 2.2 * cm, 1.3 * cm, 2.2 * cm, 2.3 * cm],
            repeatRows=1,
        )
        items_table.setStyle(TableStyle([
            # Header style
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2563eb")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f3f4f6")]),
            ("PADDING", (0, 0), (-1, -1), 3),
        ]))
        elements.append(items_table)
        elements.append(Spacer(1, 6 * mm))

        totals = Table(
            [
                ["Razem netto:", _fmt_money(invoice["net_amount"], currency)],
                ["VAT:", _fmt_money(invoice["vat_amount"], currency)],
                ["Do zaplaty:", _fmt_money(invoice["gross_amount"], currency)],
            ],
            colWidths=[4 * cm, 4.5 * cm],
            hAlign="RIGHT",
        )
        totals.setStyle(TableStyle([
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("FONTNAME", (0, 2), (-1, 2), "Helvetica-Bold"),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("LINEABOVE", (0, 2), (-1, 2), 0.75, colors.black),
        ]))
        elements.append(totals)
        elements.append(Spacer(1, 8 * mm))

        method = invoice.get("payment_method") or PaymentMethod.TRANSFER
        payment_lines = [f"Forma platnosci: {PAYMENT_METHOD_LABELS.get(method, str(method))}"]
        if invoice.get("bank_account"):
            payment_lines.append(f"Nr konta: {invoice['bank_account']}")
        if invoice.get("notes"):
            payment_lines.append(f"Uwagi: {invoice['notes']}")
        elements.append(Paragraph("<br/>".join(payment_lines), self.styles["Normal"]))

        elements.append(Spacer(1, 20 * mm))
        elements.append(
            Paragraph(f"Wygenerowano: {datetime.now().strftime('%d.%m.%Y %H:%M')}", self.styles["Footer"])
        )

        doc.build(elements)
        return buffer.getvalue()


# Singleton instance
pdf_exporter = PDFExporter()
