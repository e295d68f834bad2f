# Overview: Flask API routes for application settings.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import InventarioError, error_response
from ..permissions import Action, Resource
from ..services import settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_permission(Action.VIEW, Resource.SETTINGS)
def get_settings_route():
    """Every known key with its stored value or default. Secrets are masked."""
    return jsonify({"settings": settings_service.get_settings()}), 200


@settings_bp.put("")
@require_auth
@require_permission(Action.MANAGE, Resource.SETTINGS)
def update_settings_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    patch = data.get("settings", data)
    try:
        settings = settings_service.update_settings(patch, g.current_user)
        return jsonify({"settings": settings}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500
