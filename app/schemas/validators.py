"""
Shared Pydantic validators for common data types.
"""

import re
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BeforeValidator, Field, PlainSerializer

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def validate_pesel(v: Any) -> str | None:
    """PESEL: exactly 11 digits."""
    v = _blank_to_none(v)
    if v is None:
        return None
    pesel = str(v).strip()
    if len(pesel) != 11 or not pesel.isdigit():
        raise ValueError("PESEL musi miec 11 cyfr")
    return pesel


def validate_nip(v: Any) -> str | None:
    """
    Validate Polish tax number (NIP).

    Accepts formats like:
    - 1234567890
    - 123-456-78-90
    - PL1234567890
    """
    v = _blank_to_none(v)
    if v is None:
        return None
    cleaned = re.sub(r"[\s-]", "", str(v)).upper()
    if cleaned.startswith("PL"):
        cleaned = cleaned[2:]
    if len(cleaned) != 10 or not cleaned.isdigit():
        raise ValueError("NIP musi miec 10 cyfr")
    return cleaned


def validate_postal_code(v: Any) -> str | None:
    """Postal code, 3-10 characters; Polish ``NN-NNN`` is the common case."""
    v = _blank_to_none(v)
    if v is None:
        return None
    code = str(v).strip()
    if not 3 <= len(code) <= 10:
        raise ValueError("Nieprawidlowy kod pocztowy")
    return code


def validate_phone(v: Any) -> str | None:
    """
    Validate phone number format.

    Accepts formats like:
    - +48600100200
    - +48 600 100 200
    - 600-100-200
    """
    v = _blank_to_none(v)
    if v is None:
        return None

    phone = str(v).strip()
    cleaned = "".join(c for c in phone if c.isdigit() or c == "+")

    if len(cleaned) < 9:
        raise ValueError(f"Numer telefonu za krotki: {phone}")
    if len(cleaned) > 15:
        raise ValueError(f"Numer telefonu za dlugi: {phone}")

    return phone


def normalize_registration(v: Any) -> Any:
    """Registration plates are stored upper-case without surrounding spaces."""
    if isinstance(v, str):
        return v.strip().upper()
    return v


def validate_time_of_day(v: Any) -> str | None:
    """``HH:MM`` loading/unloading window boundary."""
    v = _blank_to_none(v)
    if v is None:
        return None
    value = str(v).strip()
    if not _TIME_RE.match(value):
        raise ValueError("Nieprawidlowy format godziny (HH:MM)")
    return value


def validate_country(v: Any) -> Any:
    if isinstance(v, str):
        return v.strip().upper()
    return v


# Annotated types for use in Pydantic models
Pesel = Annotated[
    str | None,
    BeforeValidator(validate_pesel),
    Field(default=None, description="PESEL (11 digits)"),
]

Nip = Annotated[
    str | None,
    BeforeValidator(validate_nip),
    Field(default=None, description="Polish tax number, 10 digits"),
]

PostalCode = Annotated[
    str | None,
    BeforeValidator(validate_postal_code),
    Field(default=None, description="Postal code"),
]

PhoneNumber = Annotated[
    Annotated[str, Field(max_length=50)] | None,
    BeforeValidator(validate_phone),
    Field(default=None, description="Phone number"),
]

RegistrationNumber = Annotated[
    str,
    BeforeValidator(normalize_registration),
    Field(..., min_length=2, max_length=20, description="Registration plate"),
]

TimeOfDay = Annotated[
    str | None,
    BeforeValidator(validate_time_of_day),
    Field(default=None, description="Time of day, HH:MM"),
]

CountryCode = Annotated[
    str,
    BeforeValidator(validate_country),
    Field(default="PL", min_length=2, max_length=2, description="ISO 3166-1 alpha-2 country code"),
]

Latitude = Annotated[float, Field(ge=-90, le=90, description="Latitude in degrees (-90 to 90)")]
Longitude = Annotated[float, Field(ge=-180, le=180, description="Longitude in degrees (-180 to 180)")]

RegistrationNumberOptional = Annotated[
    Annotated[str, Field(min_length=2, max_length=20)] | None,
    BeforeValidator(normalize_registration),
    Field(default=None, description="Registration plate"),
]

CountryCodeOptional = Annotated[
    Annotated[str, Field(min_length=2, max_length=2)] | None,
    BeforeValidator(validate_country),
    Field(default=None, description="ISO 3166-1 alpha-2 country code"),
]

# Amounts are Decimal in Python and plain numbers in JSON
_money_json = PlainSerializer(float, return_type=float, when_used="json")

Money = Annotated[Decimal, _money_json]
NonNegativeMoney = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2), _money_json]
PositiveMoney = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2), _money_json]
