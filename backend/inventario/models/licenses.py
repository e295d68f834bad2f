from __future__ import annotations

from ..extensions import db
from .equipment import ApprovalStatus
from inventario.time_utils import to_utc_z, expiration_status


class License(db.Model):
    """
    A software entitlement assigned to one person.

    (product, serial_key) is intentionally not unique: duplicate keys are
    possible. An empty expiration_date (or "N/A") means perpetual.
    """
    __tablename__ = "licenses"
    __table_args__ = (
        db.Index("ix_licenses_product", "product"),
        db.Index("ix_licenses_approval_status", "approval_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product = db.Column(db.String(255), nullable=False)
    license_type = db.Column(db.String(255), nullable=True)
    serial_key = db.Column(db.String(255), nullable=False)
    expiration_date = db.Column(db.String(255), nullable=True)
    assigned_user = db.Column(db.String(255), nullable=False)

    job_title = db.Column(db.String(255), nullable=True)
    department = db.Column(db.String(255), nullable=True)
    manager = db.Column(db.String(255), nullable=True)
    cost_center = db.Column(db.String(255), nullable=True)
    ledger_account = db.Column(db.String(255), nullable=True)
    computer_name = db.Column(db.String(255), nullable=True)
    ticket_number = db.Column(db.String(255), nullable=True)

    approval_status = db.Column(db.String(32), nullable=False, default=ApprovalStatus.APPROVED)
    rejection_reason = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product": self.product,
            "license_type": self.license_type,
            "serial_key": self.serial_key,
            "expiration_date": self.expiration_date,
            "expiration_status": expiration_status(self.expiration_date),
            "assigned_user": self.assigned_user,
            "job_title": self.job_title,
            "department": self.department,
            "manager": self.manager,
            "cost_center": self.cost_center,
            "ledger_account": self.ledger_account,
            "computer_name": self.computer_name,
            "ticket_number": self.ticket_number,
            "approval_status": self.approval_status,
            "rejection_reason": self.rejection_reason,
            "notes": self.notes,
        }


class LicenseTotal(db.Model):
    """
    Contracted seat count per product.

    Configuration, not inventory: keyed by product name with no foreign key
    to license rows, so it survives renames only when carried forward.
    """
    __tablename__ = "license_totals"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product = db.Column(db.String(255), nullable=False, unique=True, index=True)
    total = db.Column(db.Integer, nullable=False, default=0)

    updated_by = db.Column(db.String(255), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "product": self.product,
            "total": self.total,
            "updated_by": self.updated_by,
            "updated_at": to_utc_z(self.updated_at),
        }
