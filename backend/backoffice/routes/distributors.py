# Overview: Flask API routes for distributors and their documents.

from flask import Blueprint, request

from ..decorators import require_advertising, require_auth, who_did
from ..extensions import db
from ..models import Distributor
from ..models.admin import LOG_TYPE_ADVERTISING
from ..services import distributor_service
from ..services.log_service import append_log
from ..validation import ModelValidationPolicy, NotFoundError, ValidationError, validate_payload


DISTRIBUTOR_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "phone", "telegram", "invited_by"},
    required_on_create={"full_name", "phone"},
)

distributors_bp = Blueprint("distributors", __name__, url_prefix="/api/v1/distributors")


@distributors_bp.get("")
@require_auth
@require_advertising
def list_distributors_route():
    return {
        "distributors": [
            d.to_dict(include_documents=True) for d in distributor_service.list_distributors()
        ]
    }


@distributors_bp.post("")
@require_auth
@require_advertising
def create_distributor_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Distributor, payload=payload, policy=DISTRIBUTOR_POLICY, partial=False)
        distributor = distributor_service.create_distributor(**patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    append_log(
        who_did=who_did(),
        what_happened=f"Добавлен разносчик {distributor.full_name}",
        type=LOG_TYPE_ADVERTISING,
        event_type="DISTRIBUTOR_CREATED",
        payload={"distributor_id": distributor.id},
    )
    db.session.commit()
    return distributor.to_dict(), 201


@distributors_bp.get("/<int:distributor_id>")
@require_auth
@require_advertising
def get_distributor_route(distributor_id: int):
    try:
        return distributor_service.get_distributor_with_stats(distributor_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@distributors_bp.get("/<int:distributor_id>/documents")
@require_auth
@require_advertising
def list_distributor_documents_route(distributor_id: int):
    try:
        documents = distributor_service.list_distributor_documents(distributor_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"documents": [d.to_dict() for d in documents]}


@distributors_bp.post("/<int:distributor_id>/documents")
@require_auth
@require_advertising
def upload_distributor_document_route(distributor_id: int):
    """multipart/form-data with the scan in `file`."""
    try:
        document = distributor_service.upload_distributor_document(distributor_id, request.files.get("file"))
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    return document.to_dict(), 201
