# Overview: Flask API routes for the external inventory integration (Absolute).

"""
Absolute integration routes.

Credentials are stored as application settings and loaded into an explicit
IntegrationConfig for every call; nothing is held in process memory.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import InventarioError, error_response
from ..permissions import Action, Resource
from ..services import inventory_sync_service, settings_service


integrations_bp = Blueprint("integrations", __name__, url_prefix="/api/integrations/absolute")


@integrations_bp.get("/config")
@require_auth
@require_permission(Action.MANAGE, Resource.INTEGRATION)
def get_config_route():
    config = settings_service.get_integration_config()
    return jsonify({
        "configured": config.has_credentials,
        "token_id": settings_service.MASK if config.token_id else "",
        "secret_key": settings_service.MASK if config.secret_key else "",
        "sync_interval_hours": config.sync_interval_hours,
    }), 200


@integrations_bp.post("/config")
@require_auth
@require_permission(Action.MANAGE, Resource.INTEGRATION)
def save_config_route():
    data = request.get_json(silent=True) or {}
    token_id = data.get("token_id")
    secret_key = data.get("secret_key")

    if not token_id or not secret_key:
        return jsonify({"error": "token_id and secret_key required"}), 400

    try:
        config = settings_service.save_integration_config(
            token_id,
            secret_key,
            g.current_user,
            sync_interval_hours=data.get("sync_interval_hours"),
        )
        return jsonify({
            "configured": config.has_credentials,
            "sync_interval_hours": config.sync_interval_hours,
            "message": "Absolute credentials saved",
        }), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save Absolute credentials")
        return jsonify({"error": "Internal server error"}), 500


@integrations_bp.post("/test")
@require_auth
@require_permission(Action.MANAGE, Resource.INTEGRATION)
def test_connection_route():
    """Test the submitted credentials, or the saved ones when none are submitted."""
    data = request.get_json(silent=True) or {}
    token_id = data.get("token_id")
    secret_key = data.get("secret_key")
    if not token_id and not secret_key:
        saved = settings_service.get_integration_config()
        token_id, secret_key = saved.token_id, saved.secret_key

    try:
        return jsonify(inventory_sync_service.test_connection(token_id, secret_key)), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to test Absolute connection")
        return jsonify({"error": "Internal server error"}), 500


@integrations_bp.get("/inventory")
@require_auth
@require_permission(Action.VIEW, Resource.INTEGRATION)
def inventory_route():
    try:
        devices = inventory_sync_service.get_inventory(settings_service.get_integration_config())
        return jsonify({"devices": devices}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load Absolute inventory")
        return jsonify({"error": "Internal server error"}), 500


@integrations_bp.post("/sync")
@require_auth
@require_permission(Action.MANAGE, Resource.INTEGRATION)
def sync_route():
    try:
        result = inventory_sync_service.sync_with_provider(
            settings_service.get_integration_config(),
            g.current_user,
        )
        return jsonify(result), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to sync with Absolute")
        return jsonify({"error": "Internal server error"}), 500
