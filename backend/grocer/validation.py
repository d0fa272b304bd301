from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Stock counts share the same ceiling
MAX_QUANTITY = 999_999_999


class ValidationError(ValueError):
    """400-level input problem. `field` names the offending input when known."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ConflictError(ValueError):
    """409-level business rule conflict."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - ignored_fields: accepted in input but silently dropped (e.g. owner_id)
    """
    writable_fields: set[str]
    required_on_create: set[str] = frozenset()
    ignored_fields: set[str] = frozenset()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, key: str) -> int:
    """Strict integer parsing: rejects bools, floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer", field=key)
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)", field=key)
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)", field=key)
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer", field=key)
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal", field=key)
    raise ValidationError(f"{key} must be an integer", field=key)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean", field=col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string", field=col.key)
        return str(value).strip()

    # Default: leave as-is
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

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = {k: v for k, v in payload.items() if k not in policy.ignored_fields}

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", field=k)
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", field=k)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", field=k)
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for required text fields
        if isinstance(col.type, (String, Text)) and k in policy.required_on_create:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", field=k)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", field=k)

        patch[k] = val

    return patch


def enforce_rules_product(values: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Called with the fully merged record on update, so create and update
    share one rule set.
    """
    for key, ceiling in (
        ("price_cents", MAX_PRICE_CENTS),
        ("cost_cents", MAX_PRICE_CENTS),
        ("quantity", MAX_QUANTITY),
        ("reorder_level", MAX_QUANTITY),
    ):
        value = values.get(key)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{key} must be >= 0", field=key)
        if value > ceiling:
            raise ValidationError(f"{key} cannot exceed {ceiling}", field=key)

    for key in ("name", "sku", "category", "supplier"):
        if key in values and (values[key] is None or values[key] == ""):
            raise ValidationError(f"{key} cannot be blank", field=key)
