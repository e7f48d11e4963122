from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from sqlalchemy import JSON, Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from app.errors import ValidationError
from app.time_utils import parse_iso_datetime


# Maximum price: Rs 9,999,999.99 (999,999,999 paisa)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: payload key -> column key that clients are allowed to set (security boundary)
    - required_on_create: payload keys required for POST
    - money_fields: payload keys given in rupees and stored as paisa
    """
    writable_fields: dict[str, str]
    required_on_create: set[str] = field(default_factory=set)
    money_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _coerce_value(key: str, col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return parse_int(value, key)

    if isinstance(coltype, Boolean):
        return parse_bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            dt = None
        if dt is None:
            raise ValidationError(f"{key} must be an ISO-8601 datetime")
        return dt

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            dt = None
        if dt is None:
            raise ValidationError(f"{key} must be a date (YYYY-MM-DD)")
        return dt.date()

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # JSON columns accept lists/dicts as-is
    if isinstance(coltype, JSON):
        return value

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name. Unknown keys are ignored.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = [f for f in sorted(policy.required_on_create) if payload.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Please provide {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for key, column_key in policy.writable_fields.items():
        if key not in payload:
            continue
        raw = payload[key]
        col = cols[column_key]

        if key in policy.money_fields:
            patch[column_key] = None if raw in (None, "") else parse_money_cents(raw, key)
            if patch[column_key] is None and not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            continue

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[column_key] = None
            continue

        val = _coerce_value(key, col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{key} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{key} exceeds max length {col.type.length}")

        patch[column_key] = val

    return patch


def require_fields(data: dict, *names: str, message: str | None = None) -> None:
    missing = [n for n in names if data.get(n) in (None, "")]
    if missing:
        raise ValidationError(message or f"Please provide {', '.join(missing)}")


def parse_int(value: Any, name: str, *, minimum: int | None = None) -> int:
    """Strict integer parsing; rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{name} must be an integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    else:
        raise ValidationError(f"{name} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    return result


def parse_money_cents(value: Any, name: str) -> int:
    """Parse a rupee amount ("1499.50", 1499.5, 1500) into paisa."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a valid positive number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a valid positive number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{name} must be a valid positive number")
    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{name} cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")
    return cents


def parse_choice(value: Any, choices: Iterable[str], name: str) -> str:
    choices = tuple(choices)
    normalized = str(value or "").strip().upper()
    if normalized not in choices:
        raise ValidationError(f"Invalid {name}. Valid options: {', '.join(choices)}")
    return normalized


def parse_date_arg(value: Any, name: str) -> datetime | None:
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}. Use YYYY-MM-DD")


def parse_pagination(args, *, default_limit: int = 10, max_limit: int = 100) -> tuple[int, int]:
    page = parse_int(args.get("page", 1), "page", minimum=1)
    limit = parse_int(args.get("limit", default_limit), "limit", minimum=1)
    return page, min(limit, max_limit)


def pagination_meta(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


def validate_email(email: Any) -> str:
    normalized = str(email or "").strip().lower()
    if not EMAIL_RE.match(normalized):
        raise ValidationError("Please provide a valid email address")
    return normalized


def validate_password(password: Any, *, label: str = "Password") -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"{label} must be at least {MIN_PASSWORD_LENGTH} characters long")
    return password


def format_rupees(cents: int | None) -> str:
    """Render paisa as a display string, e.g. 149950 -> "Rs. 1,499.50"."""
    return f"Rs. {(cents or 0) / 100:,.2f}"
