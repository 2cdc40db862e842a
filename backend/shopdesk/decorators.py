# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require authentication and establish shop context.

    TENANCY: Sets the following Flask g attributes:
    - g.current_shop: The authenticated Shop (the tenant)
    - g.shop_id: Shortcut for g.current_shop.id
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or idle token
    - Account frozen or rejected since sign-in
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_shop = context.shop
        g.shop_id = context.shop_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_oauth_bridge(f):
    """
    Gate for the federated sign-in endpoint.

    The identity gateway proves itself with the shared OAUTH_BRIDGE_SECRET in
    the X-OAuth-Bridge-Secret header. With no secret configured the endpoint
    does not exist (404).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        secret = current_app.config.get("OAUTH_BRIDGE_SECRET")
        if not secret:
            return jsonify({"error": "Not found"}), 404

        presented = request.headers.get("X-OAuth-Bridge-Secret") or ""
        if not session_service.constant_time_equals(presented, secret):
            return jsonify({"error": "Invalid bridge credentials"}), 401

        return f(*args, **kwargs)

    return decorated_function
