# Overview: Append-only audit trail shared by every mutating service.

"""
Audit Log Service

Entries are added to the caller's open transaction and flushed, never
committed here: the mutation and its audit row succeed or fail together.
"""

from __future__ import annotations

from ..extensions import db
from ..models import AuditLogEntry


def record(
    username: str,
    action_type: str,
    target_type: str,
    target_id: int | None,
    details: str,
) -> AuditLogEntry:
    """Append one audit entry to the current transaction."""
    entry = AuditLogEntry(
        username=username,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        details=details,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_entries(limit: int = 200, target_type: str | None = None) -> list[AuditLogEntry]:
    """Newest first."""
    query = db.session.query(AuditLogEntry)
    if target_type:
        query = query.filter(AuditLogEntry.target_type == target_type)
    return (
        query.order_by(AuditLogEntry.timestamp.desc(), AuditLogEntry.id.desc())
        .limit(limit)
        .all()
    )
