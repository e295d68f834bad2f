# Overview: Flask API routes for license operations; parses input and returns JSON responses.

"""
License routes, including seat accounting (stats and totals) and product renames.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import InventarioError, error_response
from ..permissions import Action, Resource
from ..services import import_service, license_service, mutation_service
from ..services.mutation_service import LICENSE


licenses_bp = Blueprint("licenses", __name__, url_prefix="/api/licenses")


@licenses_bp.get("")
@require_auth
@require_permission(Action.VIEW, Resource.LICENSE)
def list_licenses_route():
    """Query params: product (optional) - only rows of that product."""
    product = request.args.get("product")
    rows = license_service.list_licenses(g.current_user, product=product)
    return jsonify({"licenses": [row.to_dict() for row in rows]}), 200


@licenses_bp.get("/<int:license_id>")
@require_auth
@require_permission(Action.VIEW, Resource.LICENSE)
def get_license_route(license_id: int):
    try:
        record = license_service.get_license(license_id, g.current_user)
        return jsonify({"license": record.to_dict()}), 200
    except InventarioError as e:
        return error_response(e)


@licenses_bp.post("")
@require_auth
@require_permission(Action.CREATE, Resource.LICENSE)
def create_license_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        record = mutation_service.create_record(LICENSE, data, g.current_user)
        return jsonify({"license": record.to_dict()}), 201
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create license")
        return jsonify({"error": "Internal server error"}), 500


@licenses_bp.put("/<int:license_id>")
@require_auth
@require_permission(Action.UPDATE, Resource.LICENSE)
def update_license_route(license_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        record = mutation_service.update_record(LICENSE, license_id, data, g.current_user)
        return jsonify({"license": record.to_dict()}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update license")
        return jsonify({"error": "Internal server error"}), 500


@licenses_bp.delete("/<int:license_id>")
@require_auth
@require_permission(Action.DELETE, Resource.LICENSE)
def delete_license_route(license_id: int):
    try:
        mutation_service.delete_record(LICENSE, license_id, g.current_user)
        return jsonify({"message": "License deleted"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete license")
        return jsonify({"error": "Internal server error"}), 500


@licenses_bp.put("/rename-product")
@require_auth
@require_permission(Action.MANAGE, Resource.LICENSE)
def rename_product_route():
    data = request.get_json(silent=True) or {}
    old_name = data.get("old_name")
    new_name = data.get("new_name")

    if not old_name or not new_name:
        return jsonify({"error": "old_name and new_name required"}), 400

    try:
        moved = license_service.rename_product(old_name, new_name, g.current_user)
        return jsonify({"renamed": moved, "product": new_name.strip()}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to rename product")
        return jsonify({"error": "Internal server error"}), 500


@licenses_bp.post("/import")
@require_auth
@require_permission(Action.MANAGE, Resource.LICENSE)
def import_licenses_route():
    """Replace one product's rows from an upload. Form fields: file, product."""
    if "file" not in request.files:
        return jsonify({"error": "file is required"}), 400
    product = request.form.get("product")
    if not product:
        return jsonify({"error": "product is required"}), 400

    file = request.files["file"]
    try:
        result = import_service.import_licenses(product, file.filename or "", file.read(), g.current_user)
        return jsonify(result.to_dict()), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to import licenses")
        return jsonify({"error": "Internal server error"}), 500


@licenses_bp.get("/stats")
@require_auth
@require_permission(Action.VIEW, Resource.LICENSE_TOTAL)
def product_stats_route():
    return jsonify({"products": license_service.get_product_stats()}), 200


@licenses_bp.get("/totals")
@require_auth
@require_permission(Action.VIEW, Resource.LICENSE_TOTAL)
def list_totals_route():
    return jsonify({"totals": license_service.list_totals()}), 200


@licenses_bp.put("/totals")
@require_auth
@require_permission(Action.MANAGE, Resource.LICENSE_TOTAL)
def set_totals_route():
    """Body: {"totals": {"Office 365": 50, ...}}"""
    data = request.get_json(silent=True) or {}
    try:
        totals = license_service.set_product_totals(data.get("totals"), g.current_user)
        return jsonify({"totals": totals}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update license totals")
        return jsonify({"error": "Internal server error"}), 500


@licenses_bp.put("/totals/<path:product>")
@require_auth
@require_permission(Action.MANAGE, Resource.LICENSE_TOTAL)
def set_total_route(product: str):
    data = request.get_json(silent=True) or {}
    if "total" not in data:
        return jsonify({"error": "total is required"}), 400

    try:
        row = license_service.set_product_total(product, data["total"], g.current_user)
        return jsonify({"total": row.to_dict()}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set license total")
        return jsonify({"error": "Internal server error"}), 500


@licenses_bp.delete("/totals/<path:product>")
@require_auth
@require_permission(Action.MANAGE, Resource.LICENSE_TOTAL)
def delete_total_route(product: str):
    try:
        license_service.delete_product_total(product, g.current_user)
        return jsonify({"message": "License total removed"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete license total")
        return jsonify({"error": "Internal server error"}), 500
