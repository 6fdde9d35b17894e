# Overview: Flask API routes polled by the notification bot.

"""
Endpoints for the notification bot process.

The bot authenticates with BOT_API_KEY (Authorization: Bearer ...), not
with a user session.
"""

from flask import Blueprint, current_app, request

from ..decorators import require_bot_key
from ..services import order_service
from ..validation import NotFoundError, ValidationError, coerce_int


telegram_bp = Blueprint("telegram", __name__, url_prefix="/api/v1/telegram")


def _order_for_bot(order) -> dict:
    data = order.to_dict()
    data["city_name"] = order.city.name if order.city else None
    data["master_name"] = order.master.full_name if order.master else None
    return data


@telegram_bp.get("")
@require_bot_key
def upcoming_orders_route():
    """Orders arriving within NOTIFY_WINDOW_HOURS that were not pushed yet."""
    window = int(current_app.config.get("NOTIFY_WINDOW_HOURS", 5))
    orders = order_service.upcoming_for_notification(window_hours=window)
    return {"orders": [_order_for_bot(o) for o in orders]}


@telegram_bp.patch("")
@require_bot_key
def mark_notified_route():
    payload = request.get_json(silent=True) or {}
    if payload.get("id") is None:
        return {"error": "Missing ID"}, 400

    try:
        order = order_service.mark_order_notified(coerce_int("id", payload["id"]))
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"id": order.id, "is_notified": order.is_notified}
