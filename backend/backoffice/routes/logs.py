# Overview: Flask API routes for the audit log (read-only).

from flask import Blueprint, request

from ..decorators import require_admin, require_auth
from ..models.admin import LOG_TYPES
from ..services.log_service import list_logs


logs_bp = Blueprint("logs", __name__, url_prefix="/api/v1/logs")

MAX_PAGE_SIZE = 500


@logs_bp.get("")
@require_auth
@require_admin
def list_logs_route():
    """
    Query params:
    - type: orders | advertising | accounts (optional)
    - limit: int (default 200, max 500)
    - offset: int (default 0)
    """
    log_type = request.args.get("type")
    if log_type and log_type not in LOG_TYPES:
        return {"error": f"type must be one of: {', '.join(LOG_TYPES)}"}, 400

    limit = min(max(request.args.get("limit", 200, type=int), 1), MAX_PAGE_SIZE)
    offset = max(request.args.get("offset", 0, type=int), 0)

    entries = list_logs(type=log_type, limit=limit, offset=offset)
    return {"logs": [e.to_dict() for e in entries], "limit": limit, "offset": offset}
