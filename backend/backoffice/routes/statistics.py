# Overview: Flask API routes for dashboard statistics.

from flask import Blueprint, request

from ..decorators import require_admin, require_advertising, require_auth
from ..services import statistics_service
from ..validation import ValidationError


statistics_bp = Blueprint("statistics", __name__, url_prefix="/api/v1/statistics")


@statistics_bp.get("/overview")
@require_auth
@require_admin
def overview_route():
    """Home dashboard: status counters, this month, all time."""
    return {
        "status_counts": statistics_service.status_counts(),
        "month": statistics_service.month_stats(),
        "profit": statistics_service.profit_stats(),
    }


@statistics_bp.get("/periods")
@require_auth
@require_admin
def periods_route():
    return {"periods": statistics_service.available_periods()}


@statistics_bp.get("/monthly")
@require_auth
@require_admin
def monthly_route():
    """
    Query params:
    - year: int (default current year)
    - month: int 0-11 (optional; per-day rows when given)
    """
    year = request.args.get("year", type=int)
    month = request.args.get("month", type=int)
    try:
        return statistics_service.monthly_statistics(year=year, month=month)
    except ValidationError as e:
        return {"error": str(e)}, 400


@statistics_bp.get("/leaflet-orders")
@require_auth
@require_advertising
def leaflet_orders_route():
    return statistics_service.leaflet_order_stats()
