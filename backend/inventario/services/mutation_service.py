# Overview: Audited create/update/delete pipeline for equipment and licenses.

"""
Mutation Pipeline

Every create, update and delete of an inventory record runs as one
transaction holding the row change and exactly one audit entry. Updates to
approved equipment also write one history row per field that changed.

Every submitted field is written as sent. Which of them count as "changed"
for history rows and the audit text is decided by loosely_equal(), not by
==: imported spreadsheets and the web form disagree on blanks versus NULL
and on "1" versus 1, and those differences are not worth a history row.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import inspect as sa_inspect

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    ApprovalStatus,
    AuditAction,
    AuditTarget,
    Equipment,
    EquipmentHistory,
    License,
    User,
)
from ..permissions import Action, Resource
from ..validation import EQUIPMENT_POLICY, LICENSE_POLICY, ModelValidationPolicy, validate_payload
from . import audit_service, permission_service
from .transaction import atomic


EQUIPMENT = "equipment"
LICENSE = "license"


@dataclass(frozen=True)
class EntitySpec:
    name: str
    model: type
    policy: ModelValidationPolicy
    audit_target: str
    resource: str
    label_field: str


ENTITIES: dict[str, EntitySpec] = {
    EQUIPMENT: EntitySpec(
        name=EQUIPMENT,
        model=Equipment,
        policy=EQUIPMENT_POLICY,
        audit_target=AuditTarget.EQUIPMENT,
        resource=Resource.EQUIPMENT,
        label_field="description",
    ),
    LICENSE: EntitySpec(
        name=LICENSE,
        model=License,
        policy=LICENSE_POLICY,
        audit_target=AuditTarget.LICENSE,
        resource=Resource.LICENSE,
        label_field="product",
    ),
}

# Field -> advisory history category. Anything else is "other".
HISTORY_CATEGORIES = {
    "site": "location",
    "current_holder": "user",
    "department": "department",
    "status": "status",
}

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


def get_entity(entity: str) -> EntitySpec:
    spec = ENTITIES.get(entity)
    if spec is None:
        raise ValidationError(f"Unknown entity type: {entity}")
    return spec


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _NUMERIC_RE.match(value.strip()):
        return float(value.strip())
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def loosely_equal(a: Any, b: Any) -> bool:
    """
    Equality used to decide whether a submitted field is a real change.

    - None, "" and whitespace-only strings are all equal
    - a blank equals numeric zero (0, "0", "0.0")
    - two numbers, or numeric strings, compare numerically ("1" == 1.0)
    - anything else compares as stripped strings
    """
    a_blank, b_blank = _is_blank(a), _is_blank(b)
    if a_blank and b_blank:
        return True

    a_num, b_num = _as_number(a), _as_number(b)
    if a_blank or b_blank:
        other = b_num if a_blank else a_num
        return other == 0

    if a_num is not None and b_num is not None:
        return a_num == b_num

    return str(a).strip() == str(b).strip()


def history_category(field: str) -> str:
    return HISTORY_CATEGORIES.get(field, "other")


def _display(value: Any) -> str:
    return "" if value is None else str(value)


def diff_fields(record, patch: dict) -> dict[str, tuple[Any, Any]]:
    """{field: (old, new)} for every submitted field that loosely differs, in column order."""
    changes = {}
    for attr in sa_inspect(type(record)).column_attrs:
        field = attr.key
        if field not in patch:
            continue
        old_value, new_value = getattr(record, field), patch[field]
        if not loosely_equal(old_value, new_value):
            changes[field] = (old_value, new_value)
    return changes


def write_fields(record, patch: dict) -> None:
    for field, value in patch.items():
        setattr(record, field, value)


def apply_equipment_changes(equipment: Equipment, patch: dict, actor_username: str) -> dict:
    """
    Apply a validated patch to an equipment row inside the caller's transaction.

    Every patched field is written; history rows cover only the loosely
    changed ones, and only when the pre-image row is approved. Returns
    those {field: (old, new)} changes.
    """
    changes = diff_fields(equipment, patch)
    record_history = equipment.approval_status == ApprovalStatus.APPROVED
    write_fields(equipment, patch)

    if record_history:
        for field, (old_value, new_value) in changes.items():
            db.session.add(EquipmentHistory(
                equipment_id=equipment.id,
                change_type=history_category(field),
                field=field,
                from_value=_display(old_value),
                to_value=_display(new_value),
                changed_by=actor_username,
            ))

    return changes


def describe_changes(changes: dict) -> str:
    if not changes:
        return "no changes"
    return "; ".join(
        f"{field}: {_display(old)!r} -> {_display(new)!r}"
        for field, (old, new) in sorted(changes.items())
    )


def _get_or_404(spec: EntitySpec, record_id: int):
    record = db.session.get(spec.model, record_id)
    if record is None:
        raise NotFoundError(f"{spec.name.capitalize()} not found")
    return record


def create_record(entity: str, fields: dict, actor: User):
    """
    Insert a record and its CREATE audit entry.

    Administrators create approved rows; everyone else creates
    pending_approval rows that stay hidden until approved.
    """
    spec = get_entity(entity)
    permission_service.require_permission(actor, Action.CREATE, spec.resource)
    patch = validate_payload(model=spec.model, payload=fields, policy=spec.policy, partial=False)

    if spec.name == EQUIPMENT and _is_blank(patch.get("qr_code")):
        patch["qr_code"] = patch.get("asset_tag") or patch.get("serial")

    status = ApprovalStatus.APPROVED if actor.is_admin else ApprovalStatus.PENDING

    with atomic():
        record = spec.model(**patch, approval_status=status)
        db.session.add(record)
        db.session.flush()

        suffix = "" if status == ApprovalStatus.APPROVED else " (pending approval)"
        audit_service.record(
            actor.username,
            AuditAction.CREATE,
            spec.audit_target,
            record.id,
            f"Created {spec.name} #{record.id}: {getattr(record, spec.label_field)}{suffix}",
        )

    return record


def update_record(entity: str, record_id: int, fields: dict, actor: User):
    """
    Apply a partial update and write its UPDATE audit entry.

    A no-op update (nothing loosely differs) still writes the audit entry
    but no history rows.
    """
    spec = get_entity(entity)
    permission_service.require_permission(actor, Action.UPDATE, spec.resource)
    patch = validate_payload(model=spec.model, payload=fields, policy=spec.policy, partial=True)

    with atomic():
        record = _get_or_404(spec, record_id)

        if spec.name == EQUIPMENT:
            changes = apply_equipment_changes(record, patch, actor.username)
        else:
            changes = diff_fields(record, patch)
            write_fields(record, patch)

        db.session.flush()
        audit_service.record(
            actor.username,
            AuditAction.UPDATE,
            spec.audit_target,
            record.id,
            f"Updated {spec.name} #{record.id}: {describe_changes(changes)}",
        )

    return record


def delete_record(entity: str, record_id: int, actor: User) -> None:
    """Hard delete. Equipment history goes with its equipment row."""
    spec = get_entity(entity)
    permission_service.require_permission(actor, Action.DELETE, spec.resource)

    with atomic():
        record = _get_or_404(spec, record_id)
        label = getattr(record, spec.label_field)

        db.session.delete(record)
        db.session.flush()

        audit_service.record(
            actor.username,
            AuditAction.DELETE,
            spec.audit_target,
            record_id,
            f"Deleted {spec.name} #{record_id}: {label}",
        )
