# Overview: Flask API routes for user administration; parses input and returns JSON responses.

"""
User administration routes.

Passwords travel in the body as "password" and never come back out;
User.to_dict() omits the hash and the TOTP secret.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import InventarioError, error_response
from ..permissions import Action, Resource
from ..services import user_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission(Action.VIEW, Resource.USER)
def list_users_route():
    return jsonify({"users": [u.to_dict() for u in user_service.list_users()]}), 200


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission(Action.VIEW, Resource.USER)
def get_user_route(user_id: int):
    try:
        return jsonify({"user": user_service.get_user(user_id).to_dict()}), 200
    except InventarioError as e:
        return error_response(e)


@users_bp.post("")
@require_auth
@require_permission(Action.CREATE, Resource.USER)
def create_user_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    fields = dict(data)
    password = fields.pop("password", None)
    if not password:
        return jsonify({"error": "password is required"}), 400

    try:
        user = user_service.create_user(fields, password, g.current_user)
        return jsonify({"user": user.to_dict()}), 201
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>")
@require_auth
@require_permission(Action.UPDATE, Resource.USER)
def update_user_route(user_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    fields = dict(data)
    password = fields.pop("password", None) or None

    try:
        user = user_service.update_user(user_id, fields, g.current_user, password=password)
        return jsonify({"user": user.to_dict()}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission(Action.DELETE, Resource.USER)
def delete_user_route(user_id: int):
    try:
        user_service.delete_user(user_id, g.current_user)
        return jsonify({"message": "User deleted"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("/<int:user_id>/disable-2fa")
@require_auth
@require_permission(Action.MANAGE, Resource.USER)
def disable_user_2fa_route(user_id: int):
    try:
        user = user_service.admin_disable_two_factor(user_id, g.current_user)
        return jsonify({"user": user.to_dict(), "message": "Two-factor authentication disabled"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to disable user 2FA")
        return jsonify({"error": "Internal server error"}), 500
