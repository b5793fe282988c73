# Overview: Admin-only oversight routes.

from flask import Blueprint, jsonify

from ..decorators import current_principal, require_auth, require_permission
from ..errors import BuildmartError
from ..responses import internal_error, service_error
from ..services import stats_service

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_permission("VIEW_USERS")
def list_users_route():
    """All accounts; password hashes are never serialized."""
    try:
        users = stats_service.list_users(current_principal())
        return jsonify([u.to_dict() for u in users]), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch users")


@admin_bp.get("/stats")
@require_auth
@require_permission("VIEW_STATS")
def stats_route():
    try:
        return jsonify(stats_service.marketplace_stats(current_principal())), 200
    except BuildmartError as e:
        return service_error(e)
    except Exception:
        return internal_error("Failed to fetch stats")
