# Overview: Read side of the equipment inventory.

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import ApprovalStatus, Equipment, EquipmentHistory, User


def list_equipment(actor: User) -> list[Equipment]:
    """
    Administrators see every row; everyone else sees approved rows only.
    """
    query = db.session.query(Equipment)
    if not actor.is_admin:
        query = query.filter(Equipment.approval_status == ApprovalStatus.APPROVED)
    return query.order_by(Equipment.id.asc()).all()


def get_equipment(equipment_id: int, actor: User) -> Equipment:
    equipment = db.session.get(Equipment, equipment_id)
    if equipment is None:
        raise NotFoundError("Equipment not found")
    if not actor.is_admin and equipment.approval_status != ApprovalStatus.APPROVED:
        raise NotFoundError("Equipment not found")
    return equipment


def get_history(equipment_id: int, actor: User) -> list[EquipmentHistory]:
    """Newest first."""
    get_equipment(equipment_id, actor)
    return (
        db.session.query(EquipmentHistory)
        .filter(EquipmentHistory.equipment_id == equipment_id)
        .order_by(EquipmentHistory.timestamp.desc(), EquipmentHistory.id.desc())
        .all()
    )


def find_by_asset_tag(asset_tag: str) -> Equipment | None:
    if not asset_tag:
        return None
    return db.session.query(Equipment).filter(Equipment.asset_tag == asset_tag).first()
