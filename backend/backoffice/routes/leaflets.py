# Overview: Flask API routes for leaflet templates and their stock.

from flask import Blueprint, request

from ..decorators import require_advertising, require_auth, who_did
from ..extensions import db
from ..models.admin import LOG_TYPE_ADVERTISING
from ..services import leaflet_service
from ..services.log_service import append_log
from ..validation import NotFoundError, ValidationError, coerce_int


leaflets_bp = Blueprint("leaflets", __name__, url_prefix="/api/v1/leaflets")


@leaflets_bp.get("")
@require_auth
@require_advertising
def list_leaflets_route():
    return {"leaflets": [l.to_dict() for l in leaflet_service.list_leaflets()]}


@leaflets_bp.get("/with-orders")
@require_auth
@require_advertising
def list_leaflets_with_orders_route():
    return {"leaflets": leaflet_service.list_leaflets_with_order_counts()}


@leaflets_bp.get("/stats")
@require_auth
@require_advertising
def leaflet_stats_route():
    return leaflet_service.get_leaflet_stats()


@leaflets_bp.post("")
@require_auth
@require_advertising
def create_leaflet_route():
    payload = request.get_json(silent=True) or {}
    try:
        value = coerce_int("value", payload.get("value", 0))
        leaflet = leaflet_service.add_leaflet(payload.get("name"), value)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return leaflet.to_dict(), 201


@leaflets_bp.get("/<int:leaflet_id>")
@require_auth
@require_advertising
def get_leaflet_route(leaflet_id: int):
    try:
        leaflet = leaflet_service.get_leaflet(leaflet_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return leaflet.to_dict()


@leaflets_bp.patch("/<int:leaflet_id>")
@require_auth
@require_advertising
def update_leaflet_quantity_route(leaflet_id: int):
    """
    Body is either {"quantity": n} (recount) or {"diff": n} (add / write off).
    """
    payload = request.get_json(silent=True) or {}

    try:
        if payload.get("quantity") is not None:
            quantity = coerce_int("quantity", payload["quantity"])
            leaflet = leaflet_service.set_leaflet_quantity(leaflet_id, quantity)
            message = f"Количество листовок «{leaflet.name}» установлено: {quantity}"
        elif payload.get("diff") is not None:
            diff = coerce_int("diff", payload["diff"])
            leaflet = leaflet_service.change_leaflet_quantity(leaflet_id, diff)
            message = f"Количество листовок «{leaflet.name}» изменено на {diff:+d}"
        else:
            return {"error": "Нужно передать quantity или diff"}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    append_log(
        who_did=who_did(),
        what_happened=message,
        type=LOG_TYPE_ADVERTISING,
        event_type="LEAFLET_STOCK_CHANGED",
        payload={"leaflet_id": leaflet.id, "value": leaflet.value},
    )
    db.session.commit()
    return leaflet.to_dict()
