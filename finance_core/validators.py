"""Validation helpers shared across the finance core and its front ends."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional

from .exceptions import ValidationError

USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]{1,64}$")

CATEGORY_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200


def _quantize_two_decimals(amount: Decimal) -> Decimal:
    """Round the amount to two decimal places using HALF_UP rounding."""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _to_decimal(raw: object, field: str) -> Decimal:
    if isinstance(raw, bool):
        raise ValidationError(f"{field} must be a numeric value")
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValidationError(f"{field} must be a numeric value") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return _quantize_two_decimals(amount)


def parse_amount(raw: object, field: str = "amount") -> Decimal:
    """Convert raw input to a positive Decimal with exactly two fraction digits."""
    amount = _to_decimal(raw, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount


def parse_limit(raw: object, field: str = "limit") -> Decimal:
    """Like :func:`parse_amount` but zero is an acceptable budget limit."""
    limit = _to_decimal(raw, field)
    if limit < 0:
        raise ValidationError(f"{field} cannot be negative")
    return limit


def validate_required_str(value: object, field: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be empty")
    if len(trimmed) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return trimmed


def validate_category(value: object) -> str:
    return validate_required_str(value, "category", CATEGORY_MAX_LENGTH)


def validate_description(value: object) -> str:
    """Descriptions are optional; a missing description becomes an empty string."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("description must be a string")
    trimmed = value.strip()
    if len(trimmed) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"description must be at most {DESCRIPTION_MAX_LENGTH} characters"
        )
    return trimmed


def validate_user_id(value: object, field: str = "user_id") -> str:
    user_id = validate_required_str(value, field, 64)
    # User ids double as file names, so keep them to a safe character set.
    if not USER_ID_PATTERN.fullmatch(user_id) or user_id in {".", ".."}:
        raise ValidationError(
            f"{field} may only contain letters, digits, '.', '_', '-' or '@'"
        )
    return user_id


def validate_timestamp(value: object, field: str = "timestamp") -> datetime:
    """Return a UTC-aware datetime truncated to whole seconds."""
    if not isinstance(value, datetime):
        raise ValidationError(f"{field} must be a datetime")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def parse_category_list(raw: Optional[str]) -> List[str]:
    """Split a comma-separated category filter, dropping blanks and duplicates."""
    if not raw:
        return []
    return unique_categories(part.strip() for part in raw.split(","))


def unique_categories(categories: Iterable[str]) -> List[str]:
    seen = set()
    result: List[str] = []
    for category in categories:
        if not category or category in seen:
            continue
        seen.add(category)
        result.append(category)
    return result
