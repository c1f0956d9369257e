from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from flask import request

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.auth import USER_ROLES, USER_STATUSES
from .models.inventory import PRODUCT_STATUSES
from .models.partners import CURRENCIES, PAYMENT_METHODS
from .time_utils import parse_iso_datetime


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

TAX_ID_RE = re.compile(r"^\d{5,20}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,30}$")

CLIENT_TYPES = ("registered", "final_consumer")
BUSINESS_TYPES = ("retail", "wholesale", "service", "manufacturing", "other")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Rates and percentages, Numeric(5, 2)
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{col.key} must be a number")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def flatten_address(payload: dict) -> dict:
    """Turn a nested {"address": {...}} block into address_* column keys."""
    if not isinstance(payload, dict) or "address" not in payload:
        return payload
    flat = dict(payload)
    address = flat.pop("address")
    if address is None:
        return flat
    if not isinstance(address, dict):
        raise ValidationError("address must be an object")
    for key, value in address.items():
        flat[f"address_{key}"] = value
    return flat


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

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                errors=[f"{f} is required" for f in missing],
            )

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

        patch[k] = val

    return patch


def _check_choice(patch: dict, field: str, choices) -> None:
    if field in patch and patch[field] is not None and patch[field] not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")


def _check_email(patch: dict, field: str = "email") -> None:
    value = patch.get(field)
    if value:
        if not EMAIL_RE.match(value):
            raise ValidationError(f"{field} must be a valid email address")
        patch[field] = value.lower()


def _check_tax_id(patch: dict) -> None:
    if "tax_id" in patch and not TAX_ID_RE.match(patch["tax_id"] or ""):
        raise ValidationError("tax_id must contain only digits (5-20)")


def _check_price(patch: dict, field: str) -> None:
    price = patch.get(field)
    if price is None:
        return
    if price < 0:
        raise ValidationError(f"{field} must be >= 0")
    if price > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")


def _check_percentage(patch: dict, field: str) -> None:
    value = patch.get(field)
    if value is not None and not (Decimal("0") <= value <= Decimal("100")):
        raise ValidationError(f"{field} must be between 0 and 100")


def enforce_rules_supplier(patch: dict) -> None:
    _check_tax_id(patch)
    _check_email(patch)
    _check_choice(patch, "status", ("active", "inactive"))


def enforce_rules_catalog_item(patch: dict) -> None:
    _check_price(patch, "unit_price_cents")
    _check_choice(patch, "currency", CURRENCIES)
    for field in ("available_quantity", "minimum_order"):
        if patch.get(field) is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")
    if patch.get("minimum_order") == 0:
        raise ValidationError("minimum_order must be >= 1")


def enforce_rules_client(patch: dict) -> None:
    _check_tax_id(patch)
    _check_email(patch)
    _check_choice(patch, "client_type", CLIENT_TYPES)
    _check_choice(patch, "business_type", BUSINESS_TYPES)
    _check_choice(patch, "preferred_payment_method", PAYMENT_METHODS)
    _check_choice(patch, "status", ("active", "inactive"))
    _check_percentage(patch, "discount_level")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in ("cost_price_cents", "selling_price_cents", "wholesale_price_cents"):
        _check_price(patch, field)
    _check_percentage(patch, "tax_rate")
    _check_choice(patch, "currency", CURRENCIES)
    _check_choice(patch, "status", PRODUCT_STATUSES)

    for field in ("minimum_stock", "maximum_stock", "reorder_point"):
        if patch.get(field) is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")

    low, high = patch.get("minimum_stock"), patch.get("maximum_stock")
    if low is not None and high is not None and low > high:
        raise ValidationError("minimum_stock cannot exceed maximum_stock")


def enforce_rules_user(patch: dict) -> None:
    if "username" in patch and not USERNAME_RE.match(patch["username"] or ""):
        raise ValidationError("username must be 3-30 letters, digits or underscores")
    _check_email(patch)
    _check_choice(patch, "role", USER_ROLES)
    _check_choice(patch, "status", USER_STATUSES)


def json_body() -> dict:
    """The request's JSON object, {} when absent. Anything but an object is rejected."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
