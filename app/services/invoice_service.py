"""
Invoice numbering and amount calculation.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.invoice import Invoice, InvoiceItem
from app.services.money import round_money, sum_money, to_decimal

logger = logging.getLogger(__name__)

INVOICE_NUMBER_PREFIX = "FV"


def invoice_number_prefix(issue_date: date) -> str:
    return f"{INVOICE_NUMBER_PREFIX}/{issue_date.year}/{issue_date.month:02d}/"


def format_invoice_number(issue_date: date, sequence: int) -> str:
    """``FV/2024/03/0007``"""
    return f"{invoice_number_prefix(issue_date)}{sequence:04d}"


def next_sequence(existing_numbers: Iterable[str]) -> int:
    """Next number in the month given the numbers already issued."""
    highest = 0
    for number in existing_numbers:
        try:
            highest = max(highest, int(number.rsplit("/", 1)[-1]))
        except ValueError:
            continue
    return highest + 1


async def generate_invoice_number(db: AsyncSession, tenant_id: UUID, issue_date: date) -> str:
    """Sequence restarts every month, per tenant."""
    prefix = invoice_number_prefix(issue_date)
    result = await db.execute(
        select(Invoice.invoice_number).where(
            Invoice.tenant_id == tenant_id,
            Invoice.invoice_number.startswith(prefix),
        )
    )
    number = format_invoice_number(issue_date, next_sequence(result.scalars().all()))
    logger.debug(f"Generated invoice number {number} for tenant {tenant_id}")
    return number


def calculate_item_amounts(
    quantity: float,
    unit_price_net: Decimal,
    vat_rate: float,
) -> tuple[Decimal, Decimal, Decimal]:
    """Return ``(net, vat, gross)`` for an invoice line."""
    net = round_money(to_decimal(quantity) * to_decimal(unit_price_net))
    vat = round_money(net * to_decimal(vat_rate) / 100)
    return net, vat, net + vat


def build_items(items_data: list[dict]) -> list[InvoiceItem]:
    items = []
    for position, data in enumerate(items_data, start=1):
        net, vat, gross = calculate_item_amounts(data["quantity"], data["unit_price_net"], data["vat_rate"])
        items.append(
            InvoiceItem(
                position=position,
                description=data["description"],
                quantity=data["quantity"],
                unit=data.get("unit") or "szt.",
                unit_price_net=data["unit_price_net"],
                vat_rate=data["vat_rate"],
                net_amount=net,
                vat_amount=vat,
                gross_amount=gross,
            )
        )
    return items


def apply_totals(invoice: Invoice, items: list[InvoiceItem]) -> None:
    invoice.net_amount = sum_money(i.net_amount for i in items)
    invoice.vat_amount = sum_money(i.vat_amount for i in items)
    invoice.gross_amount = sum_money(i.gross_amount for i in items)


def default_due_date(issue_date: date, payment_days: Optional[int]) -> date:
    return issue_date + timedelta(days=payment_days if payment_days is not None else settings.DEFAULT_PAYMENT_DAYS)
