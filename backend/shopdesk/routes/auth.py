# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/shopdesk/routes/auth.py
"""
Shop account authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and password change
- Account lockout after repeated failed attempts (login_lockout_service)
- Status gate: pending/frozen/rejected accounts get no session
- Session management with token-based auth
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import login_lockout_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..validation import ConflictError, ValidationError
from ..decorators import bearer_token, require_auth, require_oauth_bridge


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _client_info() -> tuple[str | None, str | None]:
    return request.headers.get("User-Agent"), request.remote_addr


def _session_response(shop, message: str, status: int = 200):
    user_agent, ip_address = _client_info()
    session, token = session_service.create_session(
        shop_id=shop.id,
        user_agent=user_agent,
        ip_address=ip_address
    )
    return jsonify({
        "shop": shop.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": message
    }), status


def _minutes_remaining(seconds_remaining: int | None) -> int:
    if not seconds_remaining:
        return login_lockout_service.LOCK_DURATION_MINUTES
    return (seconds_remaining // 60) + 1


@auth_bp.post("/register")
def register_route():
    """
    Sign up a new shop account and open a session for it.

    Request body:
    {
        "email": "owner@shop.example",
        "password": "...",
        "shop_name": "...", "address": "...", "phone_numbers": ["..."],
        "timezone": "Asia/Karachi"    // optional, IANA name
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.pop("email", None)
        password = data.pop("password", None)

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        shop = auth_service.register_shop(email, password, data)
        current_app.logger.info("Registered shop %s", shop.id)

        return _session_response(shop, "Registration successful", 201)

    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register shop")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a shop account and create a session token.

    ORDER:
    1. Lock check (429, counter untouched)
    2. Credentials (401, failure recorded, lock on the 5th)
    3. Success bookkeeping (counter reset, lock cleared)
    4. Account status gate (403 for pending/frozen/rejected)
    5. Session
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        # Check if account is locked due to too many failed attempts
        is_locked, seconds_remaining = login_lockout_service.is_account_locked(email)
        if is_locked:
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
                "retry_after_minutes": _minutes_remaining(seconds_remaining),
            }), 429  # Too Many Requests

        shop = auth_service.authenticate(email, password)

        if not shop:
            result = login_lockout_service.record_failed_attempt(email)

            if result.locked:
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                    "retry_after_minutes": login_lockout_service.LOCK_DURATION_MINUTES,
                }), 429

            body = {"error": "Invalid email or password"}
            if result.tracked:
                body["attempts_remaining"] = result.attempts_remaining
                if result.attempts_remaining <= 3:
                    # Warn user they're close to lockout
                    body["warning"] = f"{result.attempts_remaining} attempts remaining before account lockout"
            return jsonify(body), 401

        # The password was right: reset the counter even if the status blocks sign-in
        login_lockout_service.record_successful_login(shop)

        blocked = auth_service.blocked_status_message(shop)
        if blocked:
            return jsonify({
                "error": blocked,
                "account_status": shop.account_status,
            }), 403

        return _session_response(shop, "Login successful")

    except Exception:
        current_app.logger.exception("Failed to login shop")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/lockout-status/<email>")
def lockout_status_route(email: str):
    """
    Check lockout status for an account.

    Public so the sign-in screen can show when the user may retry.
    """
    status = login_lockout_service.get_lockout_status(email)
    return jsonify(status)


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        revoked = session_service.revoke_session(token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout shop")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/validate")
def validate_route():
    """
    Validate session token and return the signed-in shop.

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({
            "shop": context.shop.to_dict(),
            "session": context.session.to_dict(),
            "message": "Token valid"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to validate session")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the signed-in shop's password.

    Request body:
    {
        "current_password": "...",   // required for password accounts
        "new_password": "..."
    }

    Every other session for the shop is revoked; the caller's stays.
    """
    try:
        data = request.get_json(silent=True) or {}
        new_password = data.get("new_password")
        if not new_password:
            return jsonify({"error": "new_password is required"}), 400

        auth_service.change_password(g.shop_id, data.get("current_password"), new_password)
        revoked = session_service.revoke_all_shop_sessions(
            g.shop_id,
            reason="Password changed",
            keep_session_id=g.session_context.session.id,
        )

        return jsonify({"message": "Password changed", "sessions_revoked": revoked}), 200

    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/oauth")
@require_oauth_bridge
def oauth_route():
    """
    Federated sign-in for an identity the gateway has already verified.

    Request body:
    {
        "email": "owner@shop.example",
        "provider": "google",
        "display_name": "...",   // optional
        "photo_url": "..."       // optional
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        shop = auth_service.oauth_sign_in(
            email=data.get("email"),
            provider=data.get("provider"),
            display_name=data.get("display_name"),
            photo_url=data.get("photo_url"),
        )

        blocked = auth_service.blocked_status_message(shop)
        if blocked:
            return jsonify({
                "error": blocked,
                "account_status": shop.account_status,
            }), 403

        return _session_response(shop, "Login successful")

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed federated sign-in")
        return jsonify({"error": "Internal server error"}), 500
