# backend/notifier/messages.py
from __future__ import annotations

from datetime import datetime
from html import escape


VISIT_TYPE_LABELS = {
    "FIRST": "Первичный",
    "GARAGE": "Гарантийный",
    "FOLLOW_UP": "Повторный",
}

DOWNTIME_NOTICE = "⚠️ Плановое отключение через 10 минут"
BACK_ONLINE_NOTICE = "✅ Сайт снова работает!"
ALIVE_NOTICE = "✅ Сайт работает стабильно"
NO_RIGHTS_REPLY = "⛔ У тебя нет прав"


def format_arrive_date(value: str | None) -> str:
    """'2026-10-19T14:30:00Z' -> '19.10.2026, 14:30'. Unparseable values pass through."""
    if not value:
        return "не указана"
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return dt.strftime("%d.%m.%Y, %H:%M")


def _city_name(order: dict) -> str:
    city = order.get("city")
    if isinstance(city, dict):
        return city.get("name") or "-"
    return city or order.get("city_name") or "-"


def _leaflet_name(order: dict) -> str:
    leaflet = order.get("leaflet")
    if isinstance(leaflet, dict) and leaflet.get("name"):
        return leaflet["name"]
    return "Не указана"


def format_order_message(order: dict, site_url: str) -> str:
    """HTML message for one upcoming order; user-entered fields are escaped."""
    visit = VISIT_TYPE_LABELS.get(order.get("visit_type"), order.get("visit_type") or "-")
    lines = [
        f"🔔 <b>Приближается заявка #{order['id']}</b>",
        "",
        f"📅 Дата и время: <i>{escape(format_arrive_date(order.get('arrive_date')))}</i>",
        f"🚗 Тип визита: <b>{escape(visit)}</b>",
        f"🏙️ Город: {escape(_city_name(order))}",
        f"📍 Адрес: {escape(order.get('address') or '-')}",
        f"🛠️ Проблема: {escape(order.get('problem') or '-')}",
        f"📞 Телефон: {escape(order.get('phone') or '-')}",
        f"👤 Клиент: {escape(order.get('full_name') or '-')}",
        f"Листовка - {escape(_leaflet_name(order))}",
        "",
        f"{site_url}/admin/orders/{order['id']}",
    ]
    return "\n".join(lines)
