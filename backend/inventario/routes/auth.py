# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Login is one or two steps:
1. POST /login with username + password. Users with local 2FA get
   {"requires_2fa": true, "user_id": ..., "challenge": ...} and no session
   yet; everyone else (SSO users included) gets a session token straight away.
2. POST /2fa/verify with that challenge + TOTP code issues the session.

Protected routes expect Authorization: Bearer <token>.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, bearer_token
from ..errors import InventarioError, error_response
from ..services import auth_service
from ..services import permission_service
from ..services import session_service
from ..services import twofactor_service
from ..services import user_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, message: str):
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return {
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_role_permissions(user.role)),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and, unless a second factor is pending, create a session.

    Unknown username and wrong password both answer 401 "Invalid credentials".
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    password = data.get("password")

    if not username or not password:
        return jsonify({"error": "username and password required"}), 400

    try:
        user = auth_service.login(username, password)

        if user.requires_second_factor:
            challenge = twofactor_service.issue_challenge(user)
            return jsonify({"requires_2fa": True, "user_id": user.id, "challenge": challenge}), 200

        return jsonify(_session_payload(user, "Login successful")), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer session."""
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    try:
        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401
        return jsonify({"message": "Logout successful"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_role_permissions(user.role)),
        "session": g.session_context.session.to_dict(),
    }), 200


@auth_bp.put("/me")
@require_auth
def update_me_route():
    """
    Edit the current user's own profile.

    Accepts real_name, email and password (with current_password). Username
    and role echoed back by the client are ignored.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    fields = dict(data)
    password = fields.pop("password", None) or None
    current_password = fields.pop("current_password", None)

    try:
        user = user_service.update_own_profile(
            g.current_user,
            fields,
            password=password,
            current_password=current_password,
            session_id=g.session_context.session.id,
        )
        return jsonify({"user": user.to_dict()}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update own profile")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/2fa/generate")
@require_auth
def generate_2fa_route():
    """Start enrollment for the current user: returns the secret and otpauth:// URI."""
    try:
        result = twofactor_service.generate_secret(g.current_user.id)
        return jsonify(result), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to generate 2FA secret")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/2fa/enable")
@require_auth
def enable_2fa_route():
    data = request.get_json(silent=True) or {}
    secret = data.get("secret")
    code = data.get("code") or data.get("token")

    if not secret or not code:
        return jsonify({"error": "secret and code required"}), 400

    try:
        user = twofactor_service.enable(g.current_user.id, secret, code)
        return jsonify({"user": user.to_dict(), "message": "Two-factor authentication enabled"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to enable 2FA")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/2fa/verify")
def verify_2fa_route():
    """Second login step. Needs the challenge from /login; issues the session on a valid code."""
    data = request.get_json(silent=True) or {}
    challenge = data.get("challenge")
    code = data.get("code") or data.get("token")

    if not isinstance(challenge, str) or not challenge:
        return jsonify({"error": "Invalid verification code"}), 401
    if not code:
        return jsonify({"error": "challenge and code required"}), 400

    try:
        user = twofactor_service.verify(challenge, code)
        return jsonify(_session_payload(user, "Login successful")), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to verify 2FA code")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/2fa/disable")
@require_auth
def disable_2fa_route():
    try:
        user = twofactor_service.disable(g.current_user.id)
        return jsonify({"user": user.to_dict(), "message": "Two-factor authentication disabled"}), 200
    except InventarioError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to disable 2FA")
        return jsonify({"error": "Internal server error"}), 500
