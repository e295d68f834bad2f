# backend/inventario/routes/system.py
"""
System health endpoint.

Reports database reachability and whether the instance is usable
(an administrator exists to log in with).
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Equipment, License, SessionToken, User, UserRole
from ..services import approval_service
from inventario.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "equipment": db.session.query(Equipment).count(),
            "licenses": db.session.query(License).count(),
            "pending_approvals": approval_service.count_pending(),
        }
        return {"status": "healthy", "latency_ms": _elapsed_ms(start_time), "details": details}
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Database error"}


def check_auth_health() -> dict:
    """Degraded when no administrator account exists, since nobody could approve or configure anything."""
    start_time = time.time()
    try:
        admin_count = db.session.query(User).filter(User.role == UserRole.ADMIN).count()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at > utcnow(),
        ).count()
        check = {
            "status": "healthy" if admin_count else "degraded",
            "latency_ms": _elapsed_ms(start_time),
            "details": {"administrators": admin_count, "active_sessions": active_sessions},
        }
        if not admin_count:
            check["warning"] = "No administrator account; run `flask system init`"
        return check
    except Exception:
        current_app.logger.exception("Auth health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Auth check error"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()
    checks = {
        "database": check_database_health(),
        "auth": check_auth_health(),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(start_time),
        "checks": checks,
    }, http_status
