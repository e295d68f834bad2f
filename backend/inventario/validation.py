from __future__ import annotations
from datetime import datetime
from inventario.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - blank_as_null: string fields where "" is stored as NULL
    - ignored_fields: server-owned fields a client may echo back; dropped silently
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    blank_as_null: set[str] | None = None
    ignored_fields: set[str] | None = None


EQUIPMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "description", "warranty", "asset_tag", "serial", "current_holder",
        "previous_holder", "site", "department", "delivery_date", "status",
        "return_date", "ownership_type", "purchase_note", "responsibility_term",
        "photo_url", "qr_code", "notes",
    },
    required_on_create={"description"},
    # A blank tag would collide with every other blank tag on the unique index.
    blank_as_null={"asset_tag"},
    ignored_fields={"id", "approval_status", "rejection_reason"},
)

LICENSE_POLICY = ModelValidationPolicy(
    writable_fields={
        "product", "license_type", "serial_key", "expiration_date",
        "assigned_user", "job_title", "department", "manager", "cost_center",
        "ledger_account", "computer_name", "ticket_number", "notes",
    },
    required_on_create={"product", "serial_key", "assigned_user"},
    ignored_fields={"id", "approval_status", "rejection_reason", "expiration_status"},
)

USER_POLICY = ModelValidationPolicy(
    writable_fields={"real_name", "username", "email", "role", "sso_provider"},
    required_on_create={"real_name", "username", "email", "role"},
    blank_as_null={"sso_provider"},
    ignored_fields={"id", "is_2fa_enabled", "last_login_at"},
)

# Self-service profile edits: the account keeps its username and role.
PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"real_name", "email"},
    required_on_create=set(),
    ignored_fields={"id", "username", "role", "sso_provider", "is_2fa_enabled", "last_login_at"},
)


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
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            dt = parse_iso_datetime(value)
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text. Dates in this domain are free-form text, so a
    # number from a spreadsheet export is kept as its string form.
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
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

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload or payload[f] in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    blank_as_null = policy.blank_as_null or set()
    ignored = policy.ignored_fields or set()
    payload = {k: v for k, v in payload.items() if k not in ignored}

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

        if isinstance(val, str) and val == "":
            if k in blank_as_null:
                patch[k] = None
                continue
            if not col.nullable:
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch
