# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/grocer/routes/auth.py
"""
Authentication API routes

Login trades an email/password pair for a signed bearer token. Accounts are
created from the CLI (`flask users create`); there is no self-registration.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services.security_service import log_security_event
from ..decorators import require_auth
from ..extensions import db
from ..models import User


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a bearer token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not email or not password:
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate_credentials(email, password)

        if not user:
            log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                reason=f"Invalid credentials for {auth_service.normalize_email(email)}",
            )
            return jsonify({"error": "Invalid credentials"}), 401

        log_security_event(user_id=user.id, event_type="LOGIN_SUCCEEDED", success=True)

        token = current_app.extensions["identity_guard"].issue_token(user)

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """The identity the presented token resolves to."""
    user = db.session.get(User, g.owner.user_id)
    return jsonify({"user": user.to_dict()}), 200
