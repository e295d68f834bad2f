# Overview: Flask API routes for database maintenance; administrator only.

import json

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import InventarioError, error_response
from ..permissions import Action, Resource
from ..services import database_service


database_bp = Blueprint("database", __name__, url_prefix="/api/database")


@database_bp.get("/status")
@require_auth
@require_permission(Action.VIEW, Resource.DATABASE)
def database_status_route():
    report = database_service.status()
    return jsonify(report), 200 if report["online"] else 503


@database_bp.post("/backup")
@require_auth
@require_permission(Action.MANAGE, Resource.DATABASE)
def backup_route():
    """Download the backup as an attachment named inventario-backup-<timestamp>.json."""
    try:
        payload = database_service.backup(g.current_user)
        response = current_app.response_class(
            json.dumps(payload, indent=2, ensure_ascii=False),
            mimetype="application/json",
        )
        response.headers["Content-Disposition"] = (
            f"attachment; filename={database_service.backup_filename(payload)}"
        )
        return response
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to back up database")
        return jsonify({"error": "Internal server error"}), 500


@database_bp.post("/restore")
@require_auth
@require_permission(Action.MANAGE, Resource.DATABASE)
def restore_route():
    data = request.get_json(silent=True)
    try:
        counts = database_service.restore(data, g.current_user)
        return jsonify({"restored": counts, "message": "Database restored from backup"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restore database")
        return jsonify({"error": "Internal server error"}), 500


@database_bp.post("/reset")
@require_auth
@require_permission(Action.MANAGE, Resource.DATABASE)
def reset_route():
    try:
        admin = database_service.reset(g.current_user)
        return jsonify({
            "message": "Database cleared and administrator account recreated",
            "admin_username": admin.username,
        }), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reset database")
        return jsonify({"error": "Internal server error"}), 500
