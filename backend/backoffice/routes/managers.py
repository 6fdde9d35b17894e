# Overview: Flask API routes for back-office accounts and their sessions.

"""
Manager (account) administration.

SECURITY: Admin only. Password hashes and token hashes never leave the
server; session rows are listed so an admin can disable a lost device.
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_admin, require_auth, who_did
from ..extensions import db
from ..models.admin import LOG_TYPE_ACCOUNTS
from ..services import auth_service, session_service
from ..services.log_service import append_log
from ..validation import ConflictError, NotFoundError, ValidationError


managers_bp = Blueprint("managers", __name__, url_prefix="/api/v1/managers")


@managers_bp.get("")
@require_auth
@require_admin
def list_managers_route():
    return {"managers": [u.to_dict() for u in auth_service.list_managers()]}


@managers_bp.post("")
@require_auth
@require_admin
def create_manager_route():
    """Body: name, username, password (min 4), role, visibility (not for advertising)."""
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.create_manager(
            name=data.get("name"),
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role"),
            visibility=data.get("visibility"),
        )
        append_log(
            who_did=who_did(),
            what_happened=f"Создан аккаунт {user.username} ({user.role})",
            type=LOG_TYPE_ACCOUNTS,
            event_type="ACCOUNT_CREATED",
            payload={"user_id": user.id, "role": user.role},
        )
        db.session.commit()
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create manager")
        return {"error": "Internal server error"}, 500

    return user.to_dict(), 201


@managers_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_manager_route(user_id: int):
    if user_id == g.current_user.id:
        return {"error": "Нельзя удалить собственный аккаунт"}, 400

    try:
        user = auth_service.get_manager(user_id)
        username = user.username
        auth_service.delete_manager(user_id)
        append_log(
            who_did=who_did(),
            what_happened=f"Удалён аккаунт {username}",
            type=LOG_TYPE_ACCOUNTS,
            event_type="ACCOUNT_DELETED",
            payload={"user_id": user_id},
        )
        db.session.commit()
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True}, 200


@managers_bp.get("/<int:user_id>/sessions")
@require_auth
@require_admin
def list_sessions_route(user_id: int):
    try:
        sessions = session_service.list_user_sessions(user_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"sessions": [s.to_dict() for s in sessions]}


@managers_bp.patch("/sessions/<int:session_id>/disable")
@require_auth
@require_admin
def disable_session_route(session_id: int):
    try:
        session = session_service.disable_session(session_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"success": True, "session": session.to_dict()}, 200
