# Overview: Shared JSON error responses for route handlers.

from flask import current_app, jsonify

from .decorators import deny_response
from .errors import AuthenticationRequiredError, BuildmartError, PermissionDeniedError


def service_error(exc: BuildmartError):
    """Render a taxonomy error; access denials are also audited."""
    if isinstance(exc, (AuthenticationRequiredError, PermissionDeniedError)):
        return deny_response(exc)
    return jsonify(exc.to_dict()), exc.status_code


def internal_error(log_message: str):
    """Log the active exception and return an opaque 500."""
    current_app.logger.exception(log_message)
    return jsonify({"error": "Internal server error", "kind": "InternalError"}), 500
