# Overview: Service-layer aggregates for the admin and advertising dashboards.

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import LeafletOrder, Order
from ..models.distribution import LEAFLET_ORDER_STATES, STATE_DONE as LEAFLET_DONE, STATE_FORPAYMENT
from ..models.orders import ACTIVE_STATUSES, FINAL_STATUSES, STATUS_DONE
from ..validation import ValidationError
from backoffice.time_utils import month_bounds, utcnow, year_bounds


MONTH_NAMES = (
    "Январь", "Февраль", "Март", "Апрель", "Май", "Июнь",
    "Июль", "Август", "Сентябрь", "Октябрь", "Ноябрь", "Декабрь",
)
MONTH_ABBR = (
    "янв", "фев", "мар", "апр", "май", "июн",
    "июл", "авг", "сен", "окт", "ноя", "дек",
)


def _money_row(count: int, received: int, outlay: int, received_worker: int) -> dict:
    return {
        "count": int(count or 0),
        "received": int(received or 0),
        "outlay": int(outlay or 0),
        "received_worker": int(received_worker or 0),
        "profit": int(received or 0) - int(outlay or 0) - int(received_worker or 0),
    }


def _done_money_summary(start: datetime | None = None, end: datetime | None = None) -> dict:
    query = db.session.query(
        func.count(Order.id),
        func.coalesce(func.sum(Order.received), 0),
        func.coalesce(func.sum(Order.outlay), 0),
        func.coalesce(func.sum(Order.received_worker), 0),
    ).filter(Order.status == STATUS_DONE)
    if start is not None:
        query = query.filter(Order.date_done >= start)
    if end is not None:
        query = query.filter(Order.date_done < end)
    return _money_row(*query.one())


def status_counts(now: datetime | None = None) -> dict:
    """
    Order counts per status.

    Active statuses are counted over all time; final statuses only for
    orders created this month.
    """
    now = now or utcnow()
    month_start, _ = month_bounds(now.year, now.month)

    result = {status: 0 for status in (*ACTIVE_STATUSES, *FINAL_STATUSES)}

    active_rows = (
        db.session.query(Order.status, func.count(Order.id))
        .filter(Order.status.in_(ACTIVE_STATUSES))
        .group_by(Order.status)
        .all()
    )
    final_rows = (
        db.session.query(Order.status, func.count(Order.id))
        .filter(Order.status.in_(FINAL_STATUSES), Order.date_created >= month_start)
        .group_by(Order.status)
        .all()
    )
    for status, count in (*active_rows, *final_rows):
        result[status] = int(count)
    return result


def month_stats(now: datetime | None = None) -> dict:
    now = now or utcnow()
    start, end = month_bounds(now.year, now.month)
    return _done_money_summary(start, end)


def profit_stats() -> dict:
    summary = _done_money_summary()
    summary["total_profit"] = summary.pop("profit")
    return summary


def available_periods() -> list[dict]:
    """Years (newest first) with the 0-based months that have DONE orders."""
    rows = (
        db.session.query(Order.date_done)
        .filter(Order.status == STATUS_DONE, Order.date_done.isnot(None))
        .all()
    )
    periods: dict[int, set[int]] = {}
    for (date_done,) in rows:
        periods.setdefault(date_done.year, set()).add(date_done.month - 1)

    return [
        {"year": year, "months": sorted(months)}
        for year, months in sorted(periods.items(), key=lambda item: item[0], reverse=True)
    ]


def _type_summary(column, start: datetime, end: datetime) -> list[dict]:
    rows = (
        db.session.query(column, func.count(Order.id))
        .filter(Order.status == STATUS_DONE, Order.date_done >= start, Order.date_done < end)
        .group_by(column)
        .all()
    )
    return [{"type": value, "count": int(count)} for value, count in rows]


def monthly_statistics(*, year: int | None = None, month: int | None = None) -> dict:
    """
    Revenue breakdown for a year (one row per month) or for one month
    (one row per day). month is 0-based, as the dashboards send it.

    Empty buckets are skipped.
    """
    year = year or utcnow().year
    if month is not None:
        if not 0 <= month <= 11:
            raise ValidationError("month must be between 0 and 11")
        start, end = month_bounds(year, month + 1)
    else:
        start, end = year_bounds(year)

    orders = (
        db.session.query(Order)
        .filter(Order.status == STATUS_DONE, Order.date_done >= start, Order.date_done < end)
        .order_by(Order.date_done.asc())
        .all()
    )

    buckets: "OrderedDict[str, list[Order]]" = OrderedDict()
    for order in orders:
        if month is not None:
            label = f"{order.date_done.day} {MONTH_ABBR[order.date_done.month - 1]}"
        else:
            label = MONTH_NAMES[order.date_done.month - 1]
        buckets.setdefault(label, []).append(order)

    monthly = []
    for label, bucket in buckets.items():
        row = _money_row(
            len(bucket),
            sum(o.received or 0 for o in bucket),
            sum(o.outlay or 0 for o in bucket),
            sum(o.received_worker or 0 for o in bucket),
        )
        row["month"] = label
        row["time_changed"] = sum(1 for o in bucket if o.time_changed_count)
        monthly.append(row)

    return {
        "monthly_stats": monthly,
        "payment_types_summary": _type_summary(Order.payment_type, start, end),
        "visit_type_summary": _type_summary(Order.visit_type, start, end),
    }


def leaflet_order_stats() -> dict:
    """Leaflet order counts per state and distributor payouts owed / paid."""
    result = {state: 0 for state in LEAFLET_ORDER_STATES}
    rows = (
        db.session.query(LeafletOrder.state, func.count(LeafletOrder.id))
        .group_by(LeafletOrder.state)
        .all()
    )
    for state, count in rows:
        result[state] = int(count)

    def _profit_sum(state: str) -> float:
        total = (
            db.session.query(func.coalesce(func.sum(LeafletOrder.distributor_profit), 0.0))
            .filter(LeafletOrder.state == state)
            .scalar()
        )
        return float(total or 0.0)

    result["total_distributor_profit_to_pay"] = _profit_sum(STATE_FORPAYMENT)
    result["total_distributor_profit_paid"] = _profit_sum(LEAFLET_DONE)
    return result
