# Overview: Flask API routes for equipment operations; parses input and returns JSON responses.

"""
Equipment routes.

SECURITY: All routes require authentication.
- Non-administrators see approved rows only
- Creates by non-administrators land in the approval queue
- Update, delete and import are administrator operations
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import InventarioError, error_response
from ..permissions import Action, Resource
from ..services import equipment_service, import_service, mutation_service
from ..services.mutation_service import EQUIPMENT


equipment_bp = Blueprint("equipment", __name__, url_prefix="/api/equipment")


@equipment_bp.get("")
@require_auth
@require_permission(Action.VIEW, Resource.EQUIPMENT)
def list_equipment_route():
    rows = equipment_service.list_equipment(g.current_user)
    return jsonify({"equipment": [row.to_dict() for row in rows]}), 200


@equipment_bp.get("/<int:equipment_id>")
@require_auth
@require_permission(Action.VIEW, Resource.EQUIPMENT)
def get_equipment_route(equipment_id: int):
    try:
        equipment = equipment_service.get_equipment(equipment_id, g.current_user)
        return jsonify({"equipment": equipment.to_dict()}), 200
    except InventarioError as e:
        return error_response(e)


@equipment_bp.get("/<int:equipment_id>/history")
@require_auth
@require_permission(Action.VIEW, Resource.EQUIPMENT)
def equipment_history_route(equipment_id: int):
    try:
        history = equipment_service.get_history(equipment_id, g.current_user)
        return jsonify({"history": [row.to_dict() for row in history]}), 200
    except InventarioError as e:
        return error_response(e)


@equipment_bp.post("")
@require_auth
@require_permission(Action.CREATE, Resource.EQUIPMENT)
def create_equipment_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        equipment = mutation_service.create_record(EQUIPMENT, data, g.current_user)
        return jsonify({"equipment": equipment.to_dict()}), 201
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create equipment")
        return jsonify({"error": "Internal server error"}), 500


@equipment_bp.put("/<int:equipment_id>")
@require_auth
@require_permission(Action.UPDATE, Resource.EQUIPMENT)
def update_equipment_route(equipment_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        equipment = mutation_service.update_record(EQUIPMENT, equipment_id, data, g.current_user)
        return jsonify({"equipment": equipment.to_dict()}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update equipment")
        return jsonify({"error": "Internal server error"}), 500


@equipment_bp.delete("/<int:equipment_id>")
@require_auth
@require_permission(Action.DELETE, Resource.EQUIPMENT)
def delete_equipment_route(equipment_id: int):
    try:
        mutation_service.delete_record(EQUIPMENT, equipment_id, g.current_user)
        return jsonify({"message": "Equipment deleted"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete equipment")
        return jsonify({"error": "Internal server error"}), 500


@equipment_bp.post("/import")
@require_auth
@require_permission(Action.MANAGE, Resource.EQUIPMENT)
def import_equipment_route():
    """Replace the whole inventory from a ;-delimited CSV or .xlsx upload (field "file")."""
    if "file" not in request.files:
        return jsonify({"error": "file is required"}), 400

    file = request.files["file"]
    try:
        result = import_service.import_equipment(file.filename or "", file.read(), g.current_user)
        return jsonify(result.to_dict()), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to import equipment")
        return jsonify({"error": "Internal server error"}), 500
