# backend/buildmart/routes/system.py
"""
System health endpoint and stored upload serving.
"""

import time

from flask import Blueprint, abort, current_app, send_from_directory
from sqlalchemy import text
from werkzeug.utils import secure_filename

from ..extensions import db
from ..services import file_storage_service

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial round-trip.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return {
        "status": "healthy" if healthy else "unhealthy",
        "checks": {"database": database},
    }, 200 if healthy else 503


@system_bp.get("/uploads/<path:filename>")
def serve_upload(filename: str):
    name = secure_filename(filename)
    if not name or name != filename:
        abort(404)
    return send_from_directory(file_storage_service.upload_folder(), name)
