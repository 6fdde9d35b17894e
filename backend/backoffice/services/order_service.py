# Overview: Service-layer operations for service orders; encapsulates business logic and database work.

"""
Service Order Workflow

STATUS FLOW:
    PENDING -> ON_THE_WAY        a master is assigned and travelling
    ON_THE_WAY -> IN_PROGRESS    the master is on site
    * -> IN_PROGRESS_SD          the device was taken to the service desk
    * -> DONE                    money fields are recorded, date_done set
    * -> DECLINED / CANCEL_CC / CANCEL_BRANCH

DONE, DECLINED and the CANCEL_* statuses are final: no further moves.

Notification flag:
- is_notified is flipped by the notifier bot once it has pushed the order
  to the admin chat; upcoming_for_notification() never returns it again.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..models import City, Leaflet, Order, OrderDocument, Worker
from ..models.admin import LOG_TYPE_ORDERS
from ..models.orders import (
    FINAL_STATUSES,
    STATUS_CANCEL_BRANCH,
    STATUS_CANCEL_CC,
    STATUS_DECLINED,
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    STATUS_IN_PROGRESS_SD,
    STATUS_ON_THE_WAY,
    STATUS_PENDING,
    VISIT_TYPES,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from backoffice.time_utils import utcnow
from .log_service import append_log
from . import storage_service


# Columns the edit form may overwrite directly
EDITABLE_FIELDS = {
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
    "received",
    "outlay",
    "received_worker",
    "master_id",
}

TERMINAL_STATUSES = {STATUS_DECLINED, STATUS_CANCEL_CC, STATUS_CANCEL_BRANCH}


class OrderStatusError(ConflictError):
    """Raised when a status change is not allowed from the current status."""


def _get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Заказ не найден")
    return order


def _require_worker(master_id) -> Worker:
    if master_id is None:
        raise ValidationError("masterId обязателен")
    worker = db.session.get(Worker, master_id)
    if worker is None:
        raise NotFoundError("Работник не найден")
    return worker


def create_order(
    *,
    full_name: str,
    phone: str,
    address: str,
    city_id: int,
    arrive_date: datetime,
    problem: str | None = None,
    visit_type: str = "FIRST",
    call_required: bool = False,
    is_professional: bool = False,
    equipment_type: str | None = None,
    payment_type: str | None = None,
    leaflet_id: int | None = None,
    who_did: str = "Неизвестный",
) -> Order:
    if visit_type not in VISIT_TYPES:
        raise ValidationError(f"visit_type must be one of: {', '.join(VISIT_TYPES)}")
    if db.session.get(City, city_id) is None:
        raise NotFoundError("Город не найден")
    if leaflet_id is not None and db.session.get(Leaflet, leaflet_id) is None:
        raise NotFoundError("Листовка не найдена")

    order = Order(
        full_name=full_name,
        phone=phone,
        address=address,
        city_id=city_id,
        problem=problem,
        arrive_date=arrive_date,
        visit_type=visit_type,
        call_required=bool(call_required),
        is_professional=bool(is_professional),
        equipment_type=equipment_type,
        payment_type=payment_type,
        leaflet_id=leaflet_id,
        status=STATUS_PENDING,
    )
    db.session.add(order)
    db.session.flush()

    append_log(
        who_did=who_did,
        what_happened=f"Создан заказ {order.id}: {full_name}, {address}",
        type=LOG_TYPE_ORDERS,
        event_type="ORDER_CREATED",
        payload={"order_id": order.id, "city_id": city_id},
    )
    db.session.commit()
    return order


def list_orders(*, status: str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.arrive_date.desc(), Order.id.desc()).all()


def get_order(order_id: int) -> Order:
    return _get_order(order_id)


def update_order_fields(order_id: int, patch: dict, *, who_did: str = "Неизвестный") -> Order:
    """
    Apply an already-validated patch from the edit form.

    Moving arrive_date counts as a reschedule (time_changed_count += 1).
    """
    order = _get_order(order_id)

    for key in patch:
        if key not in EDITABLE_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")

    if "visit_type" in patch and patch["visit_type"] not in VISIT_TYPES:
        raise ValidationError(f"visit_type must be one of: {', '.join(VISIT_TYPES)}")
    if "city_id" in patch and db.session.get(City, patch["city_id"]) is None:
        raise NotFoundError("Город не найден")
    if patch.get("master_id") is not None:
        _require_worker(patch["master_id"])

    if "arrive_date" in patch and patch["arrive_date"] != order.arrive_date:
        order.time_changed_count = (order.time_changed_count or 0) + 1
        order.is_notified = False

    for key, value in patch.items():
        setattr(order, key, value)

    append_log(
        who_did=who_did,
        what_happened=f"Изменен заказ {order.id}: {', '.join(sorted(patch))}",
        type=LOG_TYPE_ORDERS,
        event_type="ORDER_UPDATED",
        payload={"order_id": order.id, "fields": sorted(patch)},
    )
    db.session.commit()
    return order


def change_order_status(order_id: int, status: str, data: dict | None = None, *, who_did: str = "Неизвестный") -> Order:
    """
    Move an order to `status`.

    data carries the status-specific fields:
    - ON_THE_WAY: master_id
    - DONE: received, outlay, master_id, received_worker
    """
    data = data or {}
    order = _get_order(order_id)

    if order.status in FINAL_STATUSES:
        raise OrderStatusError(f"Заказ {order.id} уже закрыт ({order.status})")

    now = utcnow()

    if status == STATUS_ON_THE_WAY:
        if order.status != STATUS_PENDING:
            raise OrderStatusError("Отправить мастера можно только из статуса PENDING")
        worker = _require_worker(data.get("master_id"))
        order.master_id = worker.id
        message = f"Заказ {order.id}: мастер {worker.full_name} выехал"

    elif status == STATUS_IN_PROGRESS:
        if order.status != STATUS_ON_THE_WAY:
            raise OrderStatusError("Мастер ещё не выехал")
        message = f"Заказ {order.id}: мастер на месте"

    elif status == STATUS_IN_PROGRESS_SD:
        message = f"Заказ {order.id}: техника забрана в СЦ"

    elif status == STATUS_DONE:
        required = ("received", "outlay", "master_id", "received_worker")
        missing = [key for key in required if data.get(key) is None]
        if missing:
            raise ValidationError("received, outlay, masterId и receivedworker обязательны")
        for key in ("received", "outlay", "received_worker"):
            if data[key] < 0:
                raise ValidationError(f"{key} must be >= 0")
        worker = _require_worker(data["master_id"])
        order.master_id = worker.id
        order.received = data["received"]
        order.outlay = data["outlay"]
        order.received_worker = data["received_worker"]
        order.date_done = now
        profit = order.received - order.outlay - order.received_worker
        message = f"Заказ {order.id} выполнен: получено {order.received}, прибыль {profit}"

    elif status in TERMINAL_STATUSES:
        order.date_done = now
        message = f"Заказ {order.id}: статус {status}"

    else:
        raise ValidationError(f"Обработка статуса {status} не реализована")

    previous = order.status
    order.status = status

    append_log(
        who_did=who_did,
        what_happened=message,
        type=LOG_TYPE_ORDERS,
        event_type="ORDER_STATUS_CHANGED",
        payload={"order_id": order.id, "from": previous, "to": status},
    )
    db.session.commit()
    return order


def upload_order_document(order_id: int, file: FileStorage | None) -> OrderDocument:
    order = _get_order(order_id)
    url, ext = storage_service.save_upload(file, subdir="orders")

    document = OrderDocument(order_id=order.id, type=ext.upper(), url=url)
    db.session.add(document)
    db.session.commit()
    return document


def upcoming_for_notification(*, window_hours: int, now: datetime | None = None) -> list[Order]:
    """Orders arriving within the next `window_hours` that the bot has not pushed yet."""
    now = now or utcnow()
    until = now + timedelta(hours=window_hours)
    return (
        db.session.query(Order)
        .filter(
            Order.is_notified.is_(False),
            Order.arrive_date >= now,
            Order.arrive_date <= until,
            Order.status.notin_([STATUS_DONE, STATUS_DECLINED]),
        )
        .order_by(Order.arrive_date.asc())
        .all()
    )


def mark_order_notified(order_id: int) -> Order:
    order = _get_order(order_id)
    order.is_notified = True
    db.session.commit()
    return order
