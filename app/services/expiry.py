"""
Expiry tracking for driver certificates and documents.
"""
from datetime import date, timedelta
from typing import Optional

from app.core.config import settings
from app.models.driver import Driver
from app.schemas.driver import ExpiryWarning

DRIVER_EXPIRY_FIELDS = (
    ("license", "license_expiry", "Prawo jazdy"),
    ("adr", "adr_expiry", "Certyfikat ADR"),
    ("medical", "medical_expiry", "Badania lekarskie"),
)


def days_until(expiry: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if expiry is None:
        return None
    return (expiry - (today or date.today())).days


def warning_cutoff(today: Optional[date] = None, warning_days: Optional[int] = None) -> date:
    """Last date that still counts as "expiring soon"."""
    days = settings.EXPIRY_WARNING_DAYS if warning_days is None else warning_days
    return (today or date.today()) + timedelta(days=days)


def driver_expiry_warnings(
    driver: Driver,
    today: Optional[date] = None,
    warning_days: Optional[int] = None,
) -> list[ExpiryWarning]:
    """
    Licence, ADR and medical dates that expired or expire within the
    warning window, soonest first.
    """
    today = today or date.today()
    cutoff = warning_cutoff(today, warning_days)
    warnings = []
    for kind, field, label in DRIVER_EXPIRY_FIELDS:
        expiry = getattr(driver, field)
        if expiry is None or expiry > cutoff:
            continue
        remaining = days_until(expiry, today)
        warnings.append(
            ExpiryWarning(
                type=kind,
                label=label,
                expiry_date=expiry,
                days_until_expiry=remaining,
                is_expired=remaining < 0,
            )
        )
    return sorted(warnings, key=lambda w: w.expiry_date)
