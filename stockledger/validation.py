from __future__ import annotations

from typing import Any


# Maximum price: 9,999,999.99 in a two-decimal currency (999,999,999 minor units)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_MINOR = 999_999_999
MAX_LINE_QUANTITY = 1_000_000
# Upper bound of the 32-bit INTEGER quantity columns
MAX_STOCK_QUANTITY = 2_147_483_647


class ValidationError(ValueError):
    """400-level input problem."""


def require_text(value: Any, field: str, *, max_length: int = 64) -> str:
    """Trimmed non-blank string, or ValidationError."""
    if value is None:
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def optional_text(value: Any, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[:max_length]


def parse_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Rejects bools, floats with a fractional part, scientific notation and
    decimal strings. Whole floats (3.0) are accepted since JSON clients
    often emit them for integer quantities.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")) or not value.is_integer():
            raise ValidationError(f"{field} must be an integer")
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def parse_positive_int(value: Any, field: str, *, maximum: int | None = None) -> int:
    parsed = parse_int(value, field)
    if parsed <= 0:
        raise ValidationError(f"{field} must be positive")
    if maximum is not None and parsed > maximum:
        raise ValidationError(f"{field} must be at most {maximum}")
    return parsed


def parse_optional_minor(value: Any, field: str) -> int | None:
    """Optional money amount in minor units; must be positive when present."""
    if value is None:
        return None
    return parse_positive_int(value, field, maximum=MAX_PRICE_MINOR)
