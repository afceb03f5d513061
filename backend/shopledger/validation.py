from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from flask import current_app, has_app_context
from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .time_utils import parse_iso_datetime


# Maximum amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

# Largest quantity accepted on a single document line
MAX_LINE_QUANTITY = 1_000_000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - non_negative_fields: integer columns that must be >= 0
    """
    writable_fields: set[str]
    required_on_create: set[str] = frozenset()  # type: ignore[assignment]
    non_negative_fields: set[str] = frozenset()  # type: ignore[assignment]


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects floats, bools and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    if isinstance(coltype, DateTime):
        return parse_date(value, col.key)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

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
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        if k in policy.non_negative_fields and val < 0:
            raise ValidationError(f"{k} must be >= 0")

        if k.endswith("_cents") and val > MAX_AMOUNT_CENTS:
            raise ValidationError(f"{k} cannot exceed {MAX_AMOUNT_CENTS}")

        patch[k] = val

    return patch


def parse_cents(value: Any, field: str, *, positive: bool = False, default: int | None = None) -> int:
    """Parse a money amount expressed in integer cents."""
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{field} is required")
    cents = coerce_int(value, field)
    if positive and cents <= 0:
        raise ValidationError(f"{field} must be a positive amount")
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return cents


def parse_optional_id(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return coerce_int(value, field)


def parse_date(value: Any, field: str) -> datetime | None:
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


@dataclass(frozen=True)
class LineItemInput:
    product_id: int
    quantity: int
    unit_amount_cents: int | None


def parse_line_items(raw_items: Any, *, unit_field: str, unit_required: bool) -> list[LineItemInput]:
    """
    Normalize ``[{product_id, quantity, <unit_field>}]`` into LineItemInput rows.

    The order of the input list is preserved; it becomes the line position.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")

    items: list[LineItemInput] = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {index} must be an object")
        if raw.get("product_id") in (None, ""):
            raise ValidationError(f"Item {index}: product_id is required")
        product_id = coerce_int(raw.get("product_id"), "product_id")
        quantity = coerce_int(raw.get("quantity"), "quantity") if raw.get("quantity") is not None else None
        if quantity is None or quantity < 1:
            raise ValidationError(f"Item {index}: quantity must be at least 1")
        if quantity > MAX_LINE_QUANTITY:
            raise ValidationError(f"Item {index}: quantity cannot exceed {MAX_LINE_QUANTITY}")

        unit = raw.get(unit_field)
        if unit is None or unit == "":
            if unit_required:
                raise ValidationError(f"Item {index}: {unit_field} is required")
            unit_cents = None
        else:
            unit_cents = parse_cents(unit, unit_field)

        items.append(LineItemInput(product_id=product_id, quantity=quantity, unit_amount_cents=unit_cents))
    return items


def format_money(cents: int) -> str:
    """Render cents for messages, e.g. 30000 -> 'Rs. 300.00'."""
    label = current_app.config.get("CURRENCY_LABEL", "Rs.") if has_app_context() else "Rs."
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{label} {sign}{whole:,}.{frac:02d}"
