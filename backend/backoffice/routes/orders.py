# Overview: Flask API routes for service orders; parses input and returns JSON responses.

"""
Service order routes.

SECURITY: Admin only. Every write is attributed to the signed-in account
in the audit log (see order_service).
"""

from flask import Blueprint, current_app, request

from ..decorators import require_admin, require_auth, who_did
from ..models import Order
from ..services import order_service
from ..services.order_service import EDITABLE_FIELDS
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_int,
    enforce_rules_order_money,
    validate_payload,
)


ORDER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "full_name",
        "phone",
        "address",
        "problem",
        "city_id",
        "leaflet_id",
        "arrive_date",
        "visit_type",
        "call_required",
        "is_professional",
        "equipment_type",
        "payment_type",
    },
    required_on_create={"full_name", "phone", "address", "city_id", "arrive_date"},
)

ORDER_UPDATE_POLICY = ModelValidationPolicy(writable_fields=set(EDITABLE_FIELDS))

STATUS_DATA_FIELDS = ("received", "outlay", "master_id", "received_worker")

orders_bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")


@orders_bp.get("")
@require_auth
@require_admin
def list_orders_route():
    status = request.args.get("status")
    return {"orders": [o.to_dict() for o in order_service.list_orders(status=status)]}


@orders_bp.post("")
@require_auth
@require_admin
def create_order_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Order, payload=payload, policy=ORDER_CREATE_POLICY, partial=False)
        order = order_service.create_order(**patch, who_did=who_did())
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return {"error": "Internal server error"}, 500

    return order.to_dict(), 201


@orders_bp.get("/<int:order_id>")
@require_auth
@require_admin
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return order.to_dict(include_documents=True)


@orders_bp.patch("/<int:order_id>")
@require_auth
@require_admin
def update_order_route(order_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Order, payload=payload, policy=ORDER_UPDATE_POLICY, partial=True)
        enforce_rules_order_money(patch)
        if not patch:
            raise ValidationError("Нечего обновлять")
        order = order_service.update_order_fields(order_id, patch, who_did=who_did())
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return order.to_dict()


@orders_bp.patch("/<int:order_id>/status")
@require_auth
@require_admin
def change_order_status_route(order_id: int):
    """
    Body: {"status": "...", ...fields the target status needs}.
    DONE needs received, outlay, master_id, received_worker;
    ON_THE_WAY needs master_id.
    """
    payload = request.get_json(silent=True) or {}
    status = payload.get("status")
    if not status:
        return {"error": "status is required"}, 400

    try:
        data = {
            key: coerce_int(key, payload[key])
            for key in STATUS_DATA_FIELDS
            if payload.get(key) is not None
        }
        order = order_service.change_order_status(order_id, status, data, who_did=who_did())
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to change status of order %s", order_id)
        return {"error": "Internal server error"}, 500

    return order.to_dict()


@orders_bp.post("/<int:order_id>/documents")
@require_auth
@require_admin
def upload_order_document_route(order_id: int):
    """multipart/form-data with the document in `file`."""
    try:
        document = order_service.upload_order_document(order_id, request.files.get("file"))
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    return document.to_dict(), 201
