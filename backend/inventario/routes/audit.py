# Overview: Flask API routes for the audit trail.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission
from ..permissions import Action, Resource
from ..services import audit_service


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit-log")


@audit_bp.get("")
@require_auth
@require_permission(Action.VIEW, Resource.AUDIT_LOG)
def list_audit_log_route():
    """
    Newest entries first.

    Query params:
    - limit: int (optional, capped at AUDIT_LOG_LIMIT)
    - target_type: EQUIPMENT | LICENSE | USER | INTEGRATION | CONFIG (optional)
    """
    max_limit = current_app.config.get("AUDIT_LOG_LIMIT", 200)
    limit = request.args.get("limit", type=int) or max_limit
    limit = max(1, min(limit, max_limit))
    target_type = request.args.get("target_type")

    entries = audit_service.list_entries(limit=limit, target_type=target_type)
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200
