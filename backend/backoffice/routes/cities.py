# Overview: Flask API routes for cities.

from flask import Blueprint, request

from ..decorators import require_admin, require_advertising, require_auth
from ..services import city_service
from ..validation import ConflictError, ValidationError


cities_bp = Blueprint("cities", __name__, url_prefix="/api/v1/cities")


@cities_bp.get("")
@require_auth
@require_advertising
def list_cities_route():
    return {"cities": [c.to_dict() for c in city_service.list_cities()]}


@cities_bp.get("/with-orders")
@require_auth
@require_admin
def list_cities_with_orders_route():
    return {"cities": city_service.list_cities_with_order_counts()}


@cities_bp.post("")
@require_auth
@require_admin
def create_city_route():
    payload = request.get_json(silent=True) or {}
    try:
        city = city_service.add_city(payload.get("name"))
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    return city.to_dict(), 201
