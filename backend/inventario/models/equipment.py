from __future__ import annotations

from ..extensions import db
from inventario.time_utils import to_utc_z


class ApprovalStatus:
    APPROVED = "approved"
    PENDING = "pending_approval"
    REJECTED = "rejected"

    ALL = (APPROVED, PENDING, REJECTED)


class Equipment(db.Model):
    """
    A physical asset.

    asset_tag is unique when present; blanks are stored as NULL so any number
    of untagged assets can coexist. Rows created by non-administrators start
    as pending_approval and stay hidden from non-administrative listings.
    """
    __tablename__ = "equipment"
    __table_args__ = (
        db.Index("ix_equipment_approval_status", "approval_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    description = db.Column(db.String(255), nullable=False)
    warranty = db.Column(db.String(255), nullable=True)
    asset_tag = db.Column(db.String(255), nullable=True, unique=True)
    serial = db.Column(db.String(255), nullable=True)
    current_holder = db.Column(db.String(255), nullable=True)
    previous_holder = db.Column(db.String(255), nullable=True)
    site = db.Column(db.String(255), nullable=True)
    department = db.Column(db.String(255), nullable=True)
    delivery_date = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(255), nullable=True)
    return_date = db.Column(db.String(255), nullable=True)
    ownership_type = db.Column(db.String(255), nullable=True)
    purchase_note = db.Column(db.String(255), nullable=True)
    responsibility_term = db.Column(db.Text, nullable=True)
    photo_url = db.Column(db.Text, nullable=True)
    qr_code = db.Column(db.Text, nullable=True)

    approval_status = db.Column(db.String(32), nullable=False, default=ApprovalStatus.APPROVED)
    rejection_reason = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    history = db.relationship(
        "EquipmentHistory",
        backref="equipment",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="EquipmentHistory.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "warranty": self.warranty,
            "asset_tag": self.asset_tag,
            "serial": self.serial,
            "current_holder": self.current_holder,
            "previous_holder": self.previous_holder,
            "site": self.site,
            "department": self.department,
            "delivery_date": self.delivery_date,
            "status": self.status,
            "return_date": self.return_date,
            "ownership_type": self.ownership_type,
            "purchase_note": self.purchase_note,
            "responsibility_term": self.responsibility_term,
            "photo_url": self.photo_url,
            "qr_code": self.qr_code,
            "approval_status": self.approval_status,
            "rejection_reason": self.rejection_reason,
            "notes": self.notes,
        }

    def __repr__(self) -> str:
        return f"<Equipment {self.id} tag={self.asset_tag!r}>"


class EquipmentHistory(db.Model):
    """
    Append-only, per-field change record for an equipment row.

    change_type is advisory (location/user/department/status/other).
    Rows are never updated; they disappear only with their equipment.
    """
    __tablename__ = "equipment_history"
    __table_args__ = (
        db.Index("ix_equipment_history_equipment_ts", "equipment_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    equipment_id = db.Column(
        db.Integer,
        db.ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    change_type = db.Column(db.String(50), nullable=False)
    field = db.Column(db.String(64), nullable=True)
    from_value = db.Column(db.Text, nullable=True)
    to_value = db.Column(db.Text, nullable=True)
    changed_by = db.Column(db.String(255), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "equipment_id": self.equipment_id,
            "change_type": self.change_type,
            "field": self.field,
            "from_value": self.from_value,
            "to_value": self.to_value,
            "changed_by": self.changed_by,
            "timestamp": to_utc_z(self.timestamp),
        }
