from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError
from .time_utils import parse_iso_date


CENTS = Decimal("0.01")
MILLI = Decimal("0.001")

# Maximum money value: 9,999,999,999.99 fits NUMERIC(12, 2)
MAX_MONEY = Decimal("9999999999.99")
# NUMERIC(12, 3)
MAX_QUANTITY = Decimal("999999999.999")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, field: str) -> Decimal:
    # bool is an int subclass; reject it explicitly
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required and must be a number")
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float, str)):
        # str(float) is the shortest round-tripping repr, so 0.1 stays 0.1
        text = value.strip() if isinstance(value, str) else str(value)
        if not text:
            raise ValidationError(f"{field} is required and must be a number")
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return number


def parse_money(value: Any, field: str, *, positive: bool = False) -> Decimal:
    """
    Coerce a JSON number/string into a cent-quantized Decimal.

    Non-negative by default; ``positive=True`` also rejects zero. Bounds are
    checked on the rounded value, so 0.004 counts as zero.
    """
    number = to_decimal(value, field)
    if number < 0:
        raise ValidationError(f"{field} cannot be negative")
    if number > MAX_MONEY:
        raise ValidationError(f"{field} exceeds the maximum allowed amount")
    number = quantize_money(number)
    if positive and number <= 0:
        raise ValidationError(f"{field} must be at least 0.01")
    return number


def parse_quantity(value: Any, field: str) -> Decimal:
    """Strictly positive quantity with up to three decimals (liters, unit prices)."""
    number = to_decimal(value, field)
    if number > MAX_QUANTITY:
        raise ValidationError(f"{field} exceeds the maximum allowed value")
    number = number.quantize(MILLI, rounding=ROUND_HALF_UP)
    if number <= 0:
        raise ValidationError(f"{field} must be at least 0.001")
    return number


def parse_date_field(value: Any, field: str, *, required: bool = True) -> date | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")


def require_text(data: dict, field: str, *, max_length: int = 255) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def optional_text(data: dict, field: str, *, max_length: int = 255) -> str | None:
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value or None


def require_choice(value: Any, field: str, choices) -> str:
    if value not in choices:
        raise ValidationError(f"Invalid {field}: {value}. Must be one of {list(choices)}")
    return value


def as_float(value: Decimal | None) -> float | None:
    """JSON-friendly money/quantity value."""
    if value is None:
        return None
    return float(value)
