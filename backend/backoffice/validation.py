# Overview: Request payload validation and the domain error types routes map to HTTP codes.

"""
Payload validation

Routes never hand raw JSON to services. A ModelValidationPolicy names the
columns a screen may write; validate_payload() checks the body against
that allowlist and the model's column metadata (type, nullability,
String length) and returns a cleaned patch.

Errors:
- ValidationError -> 400
- NotFoundError   -> 404
- ConflictError   -> 409 (state or stock conflicts, duplicate names)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text

from backoffice.time_utils import parse_iso_datetime


class ValidationError(ValueError):
    """Bad input."""


class NotFoundError(ValueError):
    """Referenced row does not exist."""


class ConflictError(ValueError):
    """The request is well-formed but clashes with current state."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


_INT_RE = re.compile(r"^-?\d+$")

PROFIT_TYPES = ("MKD", "CHS")
MONEY_FIELDS = ("received", "outlay", "received_worker")


def coerce_int(name: str, value: Any) -> int:
    """
    Integer from JSON or form input.

    Accepts ints, digit strings ("12", "-3") and whole floats (JS number
    inputs send 12.0). Rejects bools, "1e3" and "12.5".
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INT_RE.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"{name} must be an integer")


def _coerce_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def _coerce_datetime(name: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{name} must be an ISO-8601 datetime")


def _coerce_column(column, value: Any):
    name = column.key
    coltype = column.type

    if isinstance(coltype, Boolean):
        return value if isinstance(value, bool) else bool(value)
    if isinstance(coltype, Integer):
        return coerce_int(name, value)
    if isinstance(coltype, Float):
        return _coerce_float(name, value)
    if isinstance(coltype, DateTime):
        return _coerce_datetime(name, value)
    if isinstance(coltype, (String, Text)):
        text = str(value).strip()
        if not text and not column.nullable:
            raise ValidationError(f"{name} cannot be blank")
        if isinstance(coltype, String) and coltype.length and len(text) > coltype.length:
            raise ValidationError(f"{name} exceeds max length {coltype.length}")
        return text
    return value


def validate_payload(*, model, payload: Any, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Clean a JSON body for `model`.

    partial=False is create: every required_on_create field must be present.
    partial=True is edit: only the keys sent are checked.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns[key]

        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce_column(column, raw)

    return patch


def enforce_rules_leaflet_order_create(patch: dict) -> None:
    if patch.get("profit_type") not in PROFIT_TYPES:
        raise ValidationError("profit_type must be MKD or CHS")
    if patch.get("quantity") is None or patch["quantity"] <= 0:
        raise ValidationError("Количество должно быть больше нуля")


def enforce_rules_order_money(patch: dict) -> None:
    for key in MONEY_FIELDS:
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")
