# Overview: Flask API routes for workers (field masters).

from flask import Blueprint, request

from ..decorators import require_admin, require_auth
from ..models import Worker
from ..services import worker_service
from ..validation import ModelValidationPolicy, NotFoundError, ValidationError, validate_payload


WORKER_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "phone", "telegram_username"},
    required_on_create={"full_name", "phone"},
)

workers_bp = Blueprint("workers", __name__, url_prefix="/api/v1/workers")


@workers_bp.get("")
@require_auth
@require_admin
def list_workers_route():
    return {"workers": [w.to_dict() for w in worker_service.list_workers()]}


@workers_bp.get("/select")
@require_auth
@require_admin
def list_workers_for_select_route():
    """Compact (id, full_name) list for the master picker."""
    return {"workers": worker_service.list_workers_for_select()}


@workers_bp.post("")
@require_auth
@require_admin
def create_worker_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Worker, payload=payload, policy=WORKER_POLICY, partial=False)
        worker = worker_service.create_worker(**patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return worker.to_dict(), 201


@workers_bp.get("/<int:worker_id>")
@require_auth
@require_admin
def get_worker_route(worker_id: int):
    try:
        worker = worker_service.get_worker(worker_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return worker.to_dict()


@workers_bp.patch("/<int:worker_id>")
@require_auth
@require_admin
def update_worker_route(worker_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Worker, payload=payload, policy=WORKER_POLICY, partial=True)
        worker = worker_service.update_worker(worker_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    return worker.to_dict()


@workers_bp.delete("/<int:worker_id>")
@require_auth
@require_admin
def delete_worker_route(worker_id: int):
    try:
        worker_service.delete_worker(worker_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}, 200
