"""
Money arithmetic on Decimal, rounded half-up to grosze.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Optional[Decimal]:
    """Decimal from a number or numeric string; floats go through ``str``."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Any) -> Decimal:
    return (to_decimal(value) or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Any]) -> Decimal:
    return round_money(sum((to_decimal(v) or ZERO for v in values), ZERO))


def json_default(value: Any) -> Any:
    """``json.dumps`` hook: amounts leave the service as plain numbers."""
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
