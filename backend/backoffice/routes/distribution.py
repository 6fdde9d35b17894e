# Overview: Flask API routes for leaflet orders; parses input and returns JSON responses.

"""
Leaflet distribution routes.

Completion body (what the distribution screen sends):
- {"success": true}                                 -> full success
- {"success": false, "returnedLeaflets": true}      -> everything returned
- {"distributed": n, "returned": m}                 -> partial
- {"success": false}                                -> declined
An explicit {"outcome": ...} is accepted too.
"""

from flask import Blueprint, current_app, request

from ..decorators import require_advertising, require_auth, who_did
from ..models import LeafletOrder
from ..services import leaflet_order_service
from ..services.leaflet_order_service import OUTCOMES
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_int,
    enforce_rules_leaflet_order_create,
    validate_payload,
)


LEAFLET_ORDER_POLICY = ModelValidationPolicy(
    writable_fields={"profit_type", "quantity", "square_number", "leaflet_id", "city_id", "distributor_id"},
    required_on_create={"profit_type", "quantity", "leaflet_id", "city_id", "distributor_id"},
)

distribution_bp = Blueprint("distribution", __name__, url_prefix="/api/v1/distribution")


def _outcome_from_payload(payload: dict) -> tuple[str, int | None, int | None]:
    outcome = payload.get("outcome")
    distributed = payload.get("distributed")
    returned = payload.get("returned")

    if distributed is not None:
        distributed = coerce_int("distributed", distributed)
    if returned is not None:
        returned = coerce_int("returned", returned)

    if outcome is None:
        if distributed is not None or returned is not None:
            outcome = "partial"
        elif payload.get("success"):
            outcome = "success"
        elif payload.get("returnedLeaflets") or payload.get("returned_leaflets"):
            outcome = "cancel"
        else:
            outcome = "decline"

    if outcome not in OUTCOMES:
        raise ValidationError(f"outcome must be one of: {', '.join(OUTCOMES)}")
    return outcome, distributed, returned


@distribution_bp.get("")
@require_auth
@require_advertising
def list_leaflet_orders_route():
    state = request.args.get("state")
    distributor_id = request.args.get("distributor_id", type=int)
    orders = leaflet_order_service.list_leaflet_orders(state=state, distributor_id=distributor_id)
    return {"orders": [o.to_dict() for o in orders]}


@distribution_bp.post("")
@require_auth
@require_advertising
def create_leaflet_order_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=LeafletOrder, payload=payload, policy=LEAFLET_ORDER_POLICY, partial=False)
        enforce_rules_leaflet_order_create(patch)
        order = leaflet_order_service.create_leaflet_order(**patch, who_did=who_did())
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create leaflet order")
        return {"error": "Internal server error"}, 500

    return order.to_dict(), 201


@distribution_bp.get("/<int:order_id>")
@require_auth
@require_advertising
def get_leaflet_order_route(order_id: int):
    try:
        order = leaflet_order_service.get_leaflet_order(order_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return order.to_dict()


@distribution_bp.patch("/<int:order_id>")
@require_auth
@require_advertising
def edit_leaflet_order_route(order_id: int):
    """Overwrite the handed-out quantity. Stock is not touched."""
    payload = request.get_json(silent=True) or {}

    try:
        quantity = coerce_int("quantity", payload.get("quantity"))
        if quantity < 0:
            raise ValidationError("Некорректное количество")
        order = leaflet_order_service.edit_leaflet_order_quantity(
            order_id=order_id, quantity=quantity, who_did=who_did()
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to edit leaflet order %s", order_id)
        return {"error": "Internal server error"}, 500

    return order.to_dict()


@distribution_bp.post("/<int:order_id>/complete")
@require_auth
@require_advertising
def complete_leaflet_order_route(order_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        outcome, distributed, returned = _outcome_from_payload(payload)
        order = leaflet_order_service.complete_leaflet_order(
            order_id=order_id,
            outcome=outcome,
            distributed=distributed,
            returned=returned,
            who_did=who_did(),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to complete leaflet order %s", order_id)
        return {"error": "Internal server error"}, 500

    return order.to_dict()


@distribution_bp.post("/<int:order_id>/pay")
@require_auth
@require_advertising
def pay_leaflet_order_route(order_id: int):
    """multipart/form-data with the payment proof in `file`."""
    try:
        order = leaflet_order_service.upload_payment_proof(
            order_id=order_id,
            file=request.files.get("file"),
            who_did=who_did(),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"success": True, "order": order.to_dict()}, 200
