# Overview: Approval queue for records created by non-administrators.

"""
Approval Workflow

pending_approval -> approved   (approve: status flip, UPDATE audit)
pending_approval -> deleted    (reject: row removed, DELETE audit with reason)

Both transitions are single conditional statements guarded on the pending
status, so when two administrators act on the same record the loser
matches zero rows and gets NotFoundError.
"""

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import ApprovalStatus, AuditAction, EquipmentHistory, User
from ..permissions import Action
from . import audit_service, permission_service
from .mutation_service import EQUIPMENT, ENTITIES, get_entity
from .transaction import atomic


def list_pending() -> list[dict]:
    """Pending equipment then pending licenses, each in insertion order, tagged with their kind."""
    pending = []
    for kind, spec in ENTITIES.items():
        rows = (
            db.session.query(spec.model)
            .filter(spec.model.approval_status == ApprovalStatus.PENDING)
            .order_by(spec.model.id.asc())
            .all()
        )
        pending.extend({**row.to_dict(), "kind": kind} for row in rows)
    return pending


def count_pending() -> int:
    return sum(
        db.session.query(spec.model).filter(spec.model.approval_status == ApprovalStatus.PENDING).count()
        for spec in ENTITIES.values()
    )


def approve(entity: str, record_id: int, actor: User):
    spec = get_entity(entity)
    permission_service.require_permission(actor, Action.APPROVE, spec.resource)
    model = spec.model

    with atomic():
        matched = (
            db.session.query(model)
            .filter(model.id == record_id, model.approval_status == ApprovalStatus.PENDING)
            .update(
                {model.approval_status: ApprovalStatus.APPROVED, model.rejection_reason: None},
                synchronize_session=False,
            )
        )
        if matched == 0:
            raise NotFoundError(f"No pending {entity} with id {record_id}")

        audit_service.record(
            actor.username,
            AuditAction.UPDATE,
            spec.audit_target,
            record_id,
            f"Approved {entity} #{record_id}",
        )

    db.session.expire_all()
    return db.session.get(model, record_id)


def reject(entity: str, record_id: int, actor: User, reason: str | None = None) -> None:
    spec = get_entity(entity)
    permission_service.require_permission(actor, Action.APPROVE, spec.resource)
    model = spec.model
    reason = (reason or "").strip() or "no reason given"

    with atomic():
        record = db.session.get(model, record_id)
        label = getattr(record, spec.label_field, None) if record is not None else None

        matched = (
            db.session.query(model)
            .filter(model.id == record_id, model.approval_status == ApprovalStatus.PENDING)
            .delete(synchronize_session=False)
        )
        if matched == 0:
            raise NotFoundError(f"No pending {entity} with id {record_id}")

        if spec.name == EQUIPMENT:
            db.session.query(EquipmentHistory).filter(
                EquipmentHistory.equipment_id == record_id
            ).delete(synchronize_session=False)

        audit_service.record(
            actor.username,
            AuditAction.DELETE,
            spec.audit_target,
            record_id,
            f"Rejected {entity} #{record_id} ({label}): {reason}",
        )

    db.session.expire_all()
