# Overview: Database status, JSON backup, restore and reset.

"""
Database Maintenance

Backups dump the five business tables verbatim (password hashes and TOTP
secrets included, so backup files are sensitive) plus a backup_date.
Restore and reset run as single transactions through Core statements, which
bypass the ORM's append-only guard on audit rows: wiping the audit trail is
only possible through these administrator operations.
"""

from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import Boolean, DateTime, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ValidationError
from ..extensions import db
from ..models import (
    AuditLogEntry,
    BACKUP_TABLES,
    Equipment,
    EquipmentHistory,
    License,
    LicenseTotal,
    LoginChallenge,
    SessionToken,
    User,
    UserRole,
)
from ..permissions import Action, Resource
from . import permission_service
from .auth_service import hash_password
from .transaction import atomic
from inventario.time_utils import parse_iso_datetime, to_utc_z, utcnow


logger = logging.getLogger(__name__)

MODELS_BY_TABLE = {
    "users": User,
    "equipment": Equipment,
    "licenses": License,
    "equipment_history": EquipmentHistory,
    "audit_log": AuditLogEntry,
}

# Children before parents when clearing, parents before children when loading.
_CLEAR_ORDER = ("audit_log", "equipment_history", "equipment", "licenses", "users")
_LOAD_ORDER = ("users", "equipment", "licenses", "equipment_history", "audit_log")


def status() -> dict:
    """Connectivity report. A failing database answers online=False instead of raising."""
    engine = db.engine
    try:
        with engine.connect() as conn:
            if engine.dialect.name == "sqlite":
                version = conn.execute(text("select sqlite_version()")).scalar()
            else:
                info = conn.dialect.server_version_info or ()
                version = ".".join(str(part) for part in info)
            table_count = len(inspect(conn).get_table_names())
    except SQLAlchemyError as exc:
        logger.warning("Database status check failed: %s", exc)
        return {"online": False, "dialect": engine.dialect.name, "error": str(exc.__class__.__name__)}

    return {
        "online": True,
        "dialect": engine.dialect.name,
        "version": version,
        "database": engine.url.database,
        "table_count": table_count,
    }


def _serialize_value(value):
    if isinstance(value, datetime):
        return to_utc_z(value)
    return value


def _dump_table(model) -> list[dict]:
    columns = [c.key for c in model.__table__.columns]
    rows = db.session.query(model).order_by(model.id.asc()).all()
    return [{col: _serialize_value(getattr(row, col)) for col in columns} for row in rows]


def backup(actor: User) -> dict:
    permission_service.require_permission(actor, Action.MANAGE, Resource.DATABASE)
    payload = {table: _dump_table(MODELS_BY_TABLE[table]) for table in BACKUP_TABLES}
    payload["backup_date"] = to_utc_z(utcnow())
    logger.info("Database backup taken by %s", actor.username)
    return payload


def backup_filename(payload: dict) -> str:
    stamp = (payload.get("backup_date") or to_utc_z(utcnow())).replace(":", "-").rstrip("Z")
    return f"inventario-backup-{stamp}.json"


def _coerce_row(model, row: dict) -> dict:
    if not isinstance(row, dict):
        raise ValidationError(f"Backup rows for {model.__tablename__} must be objects")
    columns = {c.key: c for c in model.__table__.columns}
    cleaned = {}
    for key, value in row.items():
        column = columns.get(key)
        if column is None:
            continue
        if value is not None and isinstance(column.type, DateTime) and isinstance(value, str):
            try:
                value = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{model.__tablename__}.{key} is not an ISO-8601 datetime")
        elif value is not None and isinstance(column.type, Boolean):
            value = bool(value)
        cleaned[key] = value
    return cleaned


def _clear_business_tables() -> None:
    db.session.execute(LoginChallenge.__table__.delete())
    db.session.execute(SessionToken.__table__.delete())
    for table in _CLEAR_ORDER:
        db.session.execute(MODELS_BY_TABLE[table].__table__.delete())


def restore(payload: dict, actor: User) -> dict:
    """
    Replace the five business tables with the backup's rows.

    Validation happens before anything is touched: every table array must be
    present. Sessions are cleared too, so every client logs in again.
    Returns row counts per table.
    """
    permission_service.require_permission(actor, Action.MANAGE, Resource.DATABASE)
    if not isinstance(payload, dict) or not all(isinstance(payload.get(t), list) for t in BACKUP_TABLES):
        raise ValidationError("Invalid or corrupted backup file")

    rows_by_table = {
        table: [_coerce_row(MODELS_BY_TABLE[table], row) for row in payload[table]]
        for table in BACKUP_TABLES
    }
    actor_username = actor.username

    with atomic():
        _clear_business_tables()
        for table in _LOAD_ORDER:
            rows = rows_by_table[table]
            if rows:
                db.session.execute(MODELS_BY_TABLE[table].__table__.insert(), rows)

    db.session.expire_all()
    counts = {table: len(rows) for table, rows in rows_by_table.items()}
    logger.info("Database restored by %s: %s", actor_username, counts)
    return counts


def reset(actor: User) -> User:
    """
    Clear every business table, sessions and license totals, then reseed
    the administrator. Application settings survive.
    """
    permission_service.require_permission(actor, Action.MANAGE, Resource.DATABASE)
    config = current_app.config
    actor_username = actor.username
    password_hash = hash_password(config["SEED_ADMIN_PASSWORD"])

    with atomic():
        _clear_business_tables()
        db.session.execute(LicenseTotal.__table__.delete())
        admin = User(
            real_name=config["SEED_ADMIN_REAL_NAME"],
            username=config["SEED_ADMIN_USERNAME"],
            email=config["SEED_ADMIN_EMAIL"],
            password_hash=password_hash,
            role=UserRole.ADMIN,
        )
        db.session.add(admin)

    logger.info("Database reset by %s; administrator reseeded", actor_username)
    return admin
