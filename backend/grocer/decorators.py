# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .services.identity_service import AuthenticationError


def _bearer_token() -> str | None:
    """
    Token from the Authorization header.

    An absent header, or one without the Bearer scheme, counts as no token
    at all. "Bearer " with nothing after it is an (invalid) empty token.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip()


def require_auth(f):
    """
    Require authentication and establish owner context.

    MULTI-TENANT: Sets g.owner to the resolved OwnerIdentity. Routes pass
    g.owner.user_id to the services, which scope every query by it.

    SECURITY: Returns the same 401 body for every failure kind
    (missing token, bad signature/expiry, deleted user). Which check
    failed is only recorded in the security audit trail.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        guard = current_app.extensions["identity_guard"]

        try:
            g.owner = guard.authenticate(_bearer_token())
        except AuthenticationError:
            return jsonify({"error": AuthenticationError.public_message}), 401

        return f(*args, **kwargs)

    return decorated_function
