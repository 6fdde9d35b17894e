# Overview: Flask API routes for dashboard revenue goals.

from flask import Blueprint, request

from ..decorators import require_admin, require_auth
from ..services import goal_service
from ..services.goal_service import GOAL_FIELDS
from ..validation import ValidationError, coerce_int


goals_bp = Blueprint("goals", __name__, url_prefix="/api/v1/goals")


@goals_bp.get("")
@require_auth
@require_admin
def get_goal_route():
    return goal_service.get_goal()


@goals_bp.put("")
@require_auth
@require_admin
def set_goal_route():
    payload = request.get_json(silent=True) or {}
    try:
        values = {
            key: coerce_int(key, payload[key])
            for key in GOAL_FIELDS
            if payload.get(key) is not None
        }
        goal = goal_service.set_goal(**values)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return goal.to_dict()
