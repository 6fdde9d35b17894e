# Overview: Flask API routes for system health and version.
"""
System health and version endpoints.

Health checks the database, the session table and the upload folder so a
deploy can tell a dead database from a broken migration or a read-only
volume.
"""

import os
import sys
import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import SessionToken, User
from backoffice.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def _timed_check(name: str, probe) -> dict:
    """Run probe() and wrap its details with status and latency."""
    start_time = time.time()
    try:
        details = probe()
        status = {"status": "healthy", "details": details}
    except Exception:
        current_app.logger.exception("%s health check failed", name)
        status = {"status": "unhealthy", "error": f"{name} error"}
    status["latency_ms"] = round((time.time() - start_time) * 1000, 2)
    return status


def _database_probe() -> dict:
    return {"users": db.session.query(User).count()}


def _session_probe() -> dict:
    active = db.session.query(SessionToken).filter_by(is_valid=True)
    return {
        "active_sessions": active.count(),
        "expired_pending_cleanup": active.filter(SessionToken.expires_at < utcnow()).count(),
    }


def _uploads_probe() -> dict:
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    if not os.access(folder, os.W_OK):
        raise PermissionError(f"{folder} is not writable")
    return {"writable": True}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    checks = {
        "database": _timed_check("Database", _database_probe),
        "session_service": _timed_check("Session service", _session_probe),
        "uploads": _timed_check("Uploads", _uploads_probe),
    }
    unhealthy = any(c["status"] == "unhealthy" for c in checks.values())

    response = {
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    return response, 503 if unhealthy else 200


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info. No secrets, credentials or paths."""
    return {
        "api_version": "1.0.0",
        "environment": "production" if not current_app.debug else "development",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
        "notifications_enabled": bool(current_app.config.get("TELEGRAM_TOKEN")),
    }
