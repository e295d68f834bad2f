# Overview: Flask API routes for the approval queue; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import InventarioError, error_response
from ..permissions import Action, Resource
from ..services import approval_service


approvals_bp = Blueprint("approvals", __name__, url_prefix="/api/approvals")


def _target(data: dict):
    """(entity, id) from {"type": "equipment"|"license", "id": int}."""
    entity = data.get("type") or data.get("kind")
    record_id = data.get("id")
    if entity not in ("equipment", "license"):
        return None, None
    if not isinstance(record_id, int) or isinstance(record_id, bool):
        return None, None
    return entity, record_id


@approvals_bp.get("")
@require_auth
@require_permission(Action.APPROVE, Resource.EQUIPMENT)
def list_pending_route():
    return jsonify({"pending": approval_service.list_pending()}), 200


@approvals_bp.post("/approve")
@require_auth
def approve_route():
    data = request.get_json(silent=True) or {}
    entity, record_id = _target(data)
    if entity is None:
        return jsonify({"error": "type ('equipment' or 'license') and integer id required"}), 400

    try:
        record = approval_service.approve(entity, record_id, g.current_user)
        return jsonify({"record": record.to_dict() if record else None, "message": "Approved"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve record")
        return jsonify({"error": "Internal server error"}), 500


@approvals_bp.post("/reject")
@require_auth
def reject_route():
    data = request.get_json(silent=True) or {}
    entity, record_id = _target(data)
    if entity is None:
        return jsonify({"error": "type ('equipment' or 'license') and integer id required"}), 400

    try:
        approval_service.reject(entity, record_id, g.current_user, reason=data.get("reason"))
        return jsonify({"message": "Rejected"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject record")
        return jsonify({"error": "Internal server error"}), 500
