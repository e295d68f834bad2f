from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from inventario.time_utils import to_utc_z


class AuditAction:
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditTarget:
    EQUIPMENT = "EQUIPMENT"
    LICENSE = "LICENSE"
    USER = "USER"
    INTEGRATION = "INTEGRATION"
    CONFIG = "CONFIG"


class AuditLogEntry(db.Model):
    """
    Global audit trail.

    IMMUTABLE: Append-only. The ORM refuses updates and deletes (see the
    listeners below). Entries are written in the same transaction as the
    mutation they describe, so a failed audit insert aborts the mutation.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        db.Index("ix_audit_log_timestamp", "timestamp"),
        db.Index("ix_audit_log_target", "target_type", "target_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(255), nullable=False)
    action_type = db.Column(db.String(50), nullable=False)
    target_type = db.Column(db.String(50), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)  # Null for bulk/system actions
    details = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "action_type": self.action_type,
            "target_type": self.target_type,
            "target_id": self.target_id,
            "details": self.details,
            "timestamp": to_utc_z(self.timestamp),
        }


@event.listens_for(AuditLogEntry, "before_update")
def _refuse_audit_update(mapper, connection, target):
    raise ValueError("Audit log entries are append-only. Updates are not allowed.")


@event.listens_for(AuditLogEntry, "before_delete")
def _refuse_audit_delete(mapper, connection, target):
    raise ValueError("Audit log entries are append-only. Deletions are not allowed.")
