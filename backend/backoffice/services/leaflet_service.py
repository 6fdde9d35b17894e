# Overview: Service-layer operations for leaflet templates and their stock.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Leaflet, LeafletOrder
from ..models.distribution import STATE_DONE
from ..validation import NotFoundError, ValidationError
from backoffice.time_utils import month_bounds, start_of_day, utcnow
from .concurrency import lock_for_update, run_with_retry


def add_leaflet(name: str, value: int) -> Leaflet:
    if not name or not isinstance(name, str) or not name.strip():
        raise ValidationError("Неверное название листовки")
    if value is None or value < 0:
        raise ValidationError("Количество не может быть отрицательным")

    leaflet = Leaflet(name=name.strip(), value=value)
    db.session.add(leaflet)
    db.session.commit()
    return leaflet


def get_leaflet(leaflet_id: int) -> Leaflet:
    leaflet = db.session.get(Leaflet, leaflet_id)
    if leaflet is None:
        raise NotFoundError("Не найдено")
    return leaflet


def list_leaflets() -> list[Leaflet]:
    return db.session.query(Leaflet).order_by(Leaflet.name.asc()).all()


def list_leaflets_with_order_counts() -> list[dict]:
    order_count = func.count(LeafletOrder.id).label("orders")
    rows = (
        db.session.query(Leaflet, order_count)
        .outerjoin(LeafletOrder, LeafletOrder.leaflet_id == Leaflet.id)
        .group_by(Leaflet.id)
        .order_by(order_count.desc(), Leaflet.name.asc())
        .all()
    )
    return [
        {"id": leaflet.id, "name": leaflet.name, "value": leaflet.value, "orders_count": int(count)}
        for leaflet, count in rows
    ]


def set_leaflet_quantity(leaflet_id: int, quantity: int) -> Leaflet:
    """Overwrite stock after a physical recount."""
    if quantity is None or quantity < 0:
        raise ValidationError("Количество не может быть отрицательным")

    def _op() -> Leaflet:
        leaflet = lock_for_update(db.session.query(Leaflet).filter_by(id=leaflet_id)).first()
        if leaflet is None:
            raise NotFoundError("Не найдено")
        leaflet.value = quantity
        db.session.commit()
        return leaflet

    return run_with_retry(_op)


def change_leaflet_quantity(leaflet_id: int, diff: int) -> Leaflet:
    """Add (positive diff) or write off (negative diff) stock."""
    def _op() -> Leaflet:
        leaflet = lock_for_update(db.session.query(Leaflet).filter_by(id=leaflet_id)).first()
        if leaflet is None:
            raise NotFoundError("Не найдено")
        if leaflet.value + diff < 0:
            raise ValidationError("Недостаточно листовок на складе")
        leaflet.value = leaflet.value + diff
        db.session.commit()
        return leaflet

    return run_with_retry(_op)


def _sum_orders(orders: list[LeafletOrder]) -> dict:
    given = sum(o.given or 0 for o in orders)
    returned = sum(o.returned or 0 for o in orders)
    delivered = max(given - returned, 0)
    return {
        "given": given,
        "returned": returned,
        "delivered": delivered,
        "not_returned": given - delivered,
        "promoters": len({o.distributor_id for o in orders}),
    }


def get_leaflet_stats(now: datetime | None = None) -> dict:
    """
    Distribution dashboard: today, this month, and all time.

    Only DONE orders count towards today/month, bucketed by done_at.
    """
    now = now or utcnow()
    day_start = start_of_day(now)
    month_start, month_end = month_bounds(now.year, now.month)

    month_orders = (
        db.session.query(LeafletOrder)
        .filter(
            LeafletOrder.state == STATE_DONE,
            LeafletOrder.done_at >= month_start,
            LeafletOrder.done_at < month_end,
        )
        .all()
    )
    today_orders = [o for o in month_orders if o.done_at >= day_start]

    today = _sum_orders(today_orders)
    month = _sum_orders(month_orders)
    total = db.session.query(func.coalesce(func.sum(LeafletOrder.quantity), 0)).scalar()

    return {
        "date": now.strftime("%d.%m.%Y"),
        "today": {
            "promoters": today["promoters"],
            "flyers_issued": today["given"],
            "flyers_delivered": today["delivered"],
        },
        "month": {
            "promoters": month["promoters"],
            "flyers_issued": month["given"],
            "flyers_delivered": month["delivered"],
            "flyers_returned": month["returned"],
            "flyers_not_returned": month["not_returned"],
            "orders_count": len(month_orders),
        },
        "total_flyers": int(total or 0),
    }
