from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Any, field_name: str) -> str:
    if value is None:
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(f"{field_name} must be text")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field_name} is required")
    return text


def require_min_length(value: Any, field_name: str, min_len: int) -> str:
    if not isinstance(value, str) or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters long")
    return value


def require_positive_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; 2.9 must not quietly become 2.
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field_name} must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number")
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number


def require_positive_amount(value: Any, field_name: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be greater than zero")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field_name} is not a valid amount")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return amount


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Strip a free-text value and turn blanks into None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None
