# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Self-registration for buyer, seller and client accounts
- Token login/logout; the token goes in "Authorization: Bearer <token>"
- Failed logins are recorded as security events
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import bearer_token, require_auth
from ..errors import BuildmartError
from ..models.auth import ROLE_BUYER
from ..responses import internal_error, service_error
from ..services import auth_service, permission_service, session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create an account and sign it in.

    Body: username, email, password, role (buyer|seller|client, default
    buyer), businessName (optional). Admin accounts come from the CLI.
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role") or ROLE_BUYER,
            business_name=data.get("businessName") or data.get("business_name"),
            self_service=True,
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        current_app.logger.info("Registered user %s as %s", user.id, user.role)
        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
        }), 201

    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to register user")


@auth_bp.post("/login")
def login_route():
    """
    Log in with username (or email) and password.

    200 with {user, token, session}; 401 for any bad credential, logged
    as LOGIN_FAILED.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required", "kind": "ValidationError"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(username, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action="LOGIN",
                reason=f"Invalid credentials for {username!r}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials", "kind": "AuthenticationRequired"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        return internal_error("Failed to login user")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(bearer_token(), reason="User logout")
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        return internal_error("Failed to logout user")


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
