# Overview: Request and permission decorators for API routes.

"""
The HTTP edge of authentication.

require_auth / optional_auth turn a bearer token into an explicit
Principal on g.principal. Routes read it once and pass it as an argument
into every service call; services never look at g.

require_permission(action) is a role pre-screen through the access gate
(ownership is checked later by the service once the resource is loaded).
"""

from functools import wraps

from flask import g, jsonify, request

from .errors import AuthenticationRequiredError, PermissionDeniedError
from .services import permission_service, session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _establish_context(token: str) -> bool:
    context = session_service.validate_session(token)
    if not context:
        return False
    g.current_user = context.user
    g.principal = context.principal
    g.session_context = context
    return True


def deny_response(exc, action: str | None = None):
    principal = getattr(g, "principal", None)
    permission_service.log_security_event(
        user_id=principal.id if principal else None,
        event_type="AUTH_REQUIRED" if isinstance(exc, AuthenticationRequiredError) else "PERMISSION_DENIED",
        success=False,
        resource=request.path,
        action=action or request.method,
        reason=exc.message,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify(exc.to_dict()), exc.status_code


def current_principal():
    return getattr(g, "principal", None)


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user, g.principal and g.session_context.
    Returns 401 if the header is missing, or the token is invalid,
    expired, revoked or belongs to a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.principal = None
        token = bearer_token()
        if not token:
            return deny_response(AuthenticationRequiredError("Authentication required"))

        if not _establish_context(token):
            return deny_response(AuthenticationRequiredError("Invalid or expired token"))

        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """
    Resolve a principal when a valid token is sent, carry on anonymously
    otherwise. Used by public catalog reads that show more to owners.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.principal = None
        token = bearer_token()
        if token:
            _establish_context(token)
        return f(*args, **kwargs)

    return decorated_function


def require_permission(action: str):
    """
    Role pre-screen for `action` via the access gate.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                permission_service.require(current_principal(), action)
            except (AuthenticationRequiredError, PermissionDeniedError) as e:
                return deny_response(e, action)
            return f(*args, **kwargs)

        return decorated_function
    return decorator
