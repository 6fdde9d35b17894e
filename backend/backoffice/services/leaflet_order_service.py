# Overview: Service-layer operations for leaflet orders; encapsulates business logic and database work.

"""
Leaflet Order Lifecycle

================================================================================
PURPOSE: Keep requested distribution quantities and leaflet stock consistent
================================================================================

STATE MACHINE:
    IN_PROCESS -> DONE        full success, partial success, or all returned
    IN_PROCESS -> DECLINED    nothing distributed and nothing returned
    FORPAYMENT/DONE -> DONE   payment proof attached

STOCK RULES:
1. create() decrements Leaflet.value by quantity, after checking
   value >= quantity, inside one transaction with the order insert.
2. Partial completion credits exactly `returned` back to stock.
3. Cancellation (everything returned) credits exactly `quantity` back.
4. Full success and decline leave stock untouched.
5. Leaflet.value never goes negative.
6. edit_quantity() overwrites quantity only; stock is NOT reconciled.

Every transition appends one audit log row in the same transaction.
================================================================================
"""

from __future__ import annotations

from typing import Literal

from flask import current_app
from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..models import City, Distributor, Leaflet, LeafletOrder
from ..models.admin import LOG_TYPE_ADVERTISING
from ..models.distribution import (
    PROFIT_MULTIPLIERS,
    STATE_CANCELLED,
    STATE_DECLINED,
    STATE_DONE,
    STATE_IN_PROCESS,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from backoffice.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .log_service import append_log
from . import notification_service, storage_service


Outcome = Literal["success", "partial", "decline", "cancel"]
OUTCOMES = ("success", "partial", "decline", "cancel")


class InsufficientStock(ConflictError):
    """Raised when a leaflet has fewer units on hand than an order requests."""


class InvalidTransition(ConflictError):
    """Raised when an order is not in a state that allows the operation."""


def profit_multiplier(profit_type: str) -> float:
    try:
        return PROFIT_MULTIPLIERS[profit_type]
    except KeyError:
        raise ValidationError(f"Unknown profit type: {profit_type}")


def _get_order(order_id: int, *, lock: bool = False) -> LeafletOrder:
    query = db.session.query(LeafletOrder).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError("Заказ не найден")
    return order


def _get_leaflet(leaflet_id: int, *, lock: bool = False) -> Leaflet:
    query = db.session.query(Leaflet).filter_by(id=leaflet_id)
    if lock:
        query = lock_for_update(query)
    leaflet = query.first()
    if leaflet is None:
        raise NotFoundError("Листовка не найдена")
    return leaflet


def get_leaflet_order(order_id: int) -> LeafletOrder:
    return _get_order(order_id)


def list_leaflet_orders(*, state: str | None = None, distributor_id: int | None = None) -> list[LeafletOrder]:
    query = db.session.query(LeafletOrder)
    if state:
        query = query.filter(LeafletOrder.state == state)
    if distributor_id:
        query = query.filter(LeafletOrder.distributor_id == distributor_id)
    return query.order_by(LeafletOrder.created_at.desc(), LeafletOrder.id.desc()).all()


def create_leaflet_order(
    *,
    profit_type: str,
    quantity: int,
    leaflet_id: int,
    city_id: int,
    distributor_id: int,
    square_number: str | None = None,
    who_did: str = "Неизвестный",
) -> LeafletOrder:
    """
    Assign `quantity` leaflets to a distributor and take them out of stock.

    Raises:
        NotFoundError: leaflet, city, or distributor does not exist
        InsufficientStock: leaflet.value < quantity (stock left unchanged)
        ValidationError: bad profit type or non-positive quantity
    """
    profit_multiplier(profit_type)
    if quantity is None or quantity <= 0:
        raise ValidationError("Количество должно быть больше нуля")

    def _op() -> LeafletOrder:
        try:
            leaflet = _get_leaflet(leaflet_id, lock=True)

            if db.session.get(City, city_id) is None:
                raise NotFoundError("Город не найден")
            distributor = db.session.get(Distributor, distributor_id)
            if distributor is None:
                raise NotFoundError("Разносчик не найден")

            if leaflet.value < quantity:
                raise InsufficientStock("Недостаточно листовок на складе")

            leaflet.value = leaflet.value - quantity

            order = LeafletOrder(
                profit_type=profit_type,
                quantity=quantity,
                square_number=square_number,
                leaflet_id=leaflet.id,
                city_id=city_id,
                distributor_id=distributor.id,
                state=STATE_IN_PROCESS,
                distributor_profit=0.0,
            )
            db.session.add(order)
            db.session.flush()

            append_log(
                who_did=who_did,
                what_happened=(
                    f"Создан заказ {order.id}: {distributor.full_name} взял {quantity} "
                    f"листовок «{leaflet.name}»"
                ),
                type=LOG_TYPE_ADVERTISING,
                event_type="LEAFLET_ORDER_CREATED",
                payload={
                    "order_id": order.id,
                    "leaflet_id": leaflet.id,
                    "distributor_id": distributor.id,
                    "quantity": quantity,
                    "stock_after": leaflet.value,
                },
            )
            db.session.commit()
            return order
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op)


def complete_leaflet_order(
    *,
    order_id: int,
    outcome: Outcome,
    distributed: int | None = None,
    returned: int | None = None,
    who_did: str = "Неизвестный",
) -> LeafletOrder:
    """
    Close an IN_PROCESS order.

    outcome:
        success  everything was handed out
        partial  `distributed` handed out, `returned` brought back
        decline  nothing handed out, nothing returned
        cancel   everything brought back

    Raises:
        NotFoundError: order does not exist
        InvalidTransition: order is not IN_PROCESS
        ValidationError: counts missing, negative, or above quantity
    """
    if outcome not in OUTCOMES:
        raise ValidationError(f"Unknown outcome: {outcome}")

    if outcome == "partial":
        if distributed is None or returned is None:
            raise ValidationError("Нужно указать распространённые и возвращённые листовки")
        if distributed < 0 or returned < 0:
            raise ValidationError("Количество не может быть отрицательным")

    def _op() -> LeafletOrder:
        try:
            order = _get_order(order_id, lock=True)
            if order.state != STATE_IN_PROCESS:
                raise InvalidTransition(f"Заказ {order.id} уже завершён ({order.state})")

            multiplier = profit_multiplier(order.profit_type)
            now = utcnow()
            credited = 0

            if outcome == "success":
                order.state = STATE_DONE
                order.given = order.quantity
                order.returned = 0
                order.distributor_profit = multiplier * order.quantity
                message = f"Заказ {order.id} выполнен полностью: раздано {order.quantity}"
                event_type = "LEAFLET_ORDER_DONE"

            elif outcome == "partial":
                if distributed + returned > order.quantity:
                    raise ValidationError(
                        "Сумма розданных и возвращённых листовок больше выданного количества"
                    )
                credited = returned
                order.state = STATE_DONE
                order.given = distributed
                order.returned = returned
                order.distributor_profit = multiplier * distributed
                message = (
                    f"Заказ {order.id} выполнен частично: раздано {distributed}, "
                    f"возвращено {returned}"
                )
                event_type = "LEAFLET_ORDER_PARTIAL"

            elif outcome == "cancel":
                credited = order.quantity
                order.state = STATE_DONE
                order.given = 0
                order.returned = order.quantity
                order.distributor_profit = 0.0
                message = f"Заказ {order.id} отменён: возвращено на склад {order.quantity}"
                event_type = "LEAFLET_ORDER_RETURNED"

            else:
                order.state = STATE_DECLINED
                order.given = 0
                order.returned = 0
                order.distributor_profit = 0.0
                message = f"Заказ {order.id} провален: листовки не возвращены"
                event_type = "LEAFLET_ORDER_DECLINED"

            if credited:
                leaflet = _get_leaflet(order.leaflet_id, lock=True)
                leaflet.value = leaflet.value + credited

            order.done_at = now

            append_log(
                who_did=who_did,
                what_happened=message,
                type=LOG_TYPE_ADVERTISING,
                event_type=event_type,
                payload={
                    "order_id": order.id,
                    "outcome": outcome,
                    "given": order.given,
                    "returned": order.returned,
                    "credited_to_stock": credited,
                    "distributor_profit": order.distributor_profit,
                },
            )
            db.session.commit()
            return order
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op)


def edit_leaflet_order_quantity(*, order_id: int, quantity: int, who_did: str = "Неизвестный") -> LeafletOrder:
    """
    Overwrite the requested quantity of an order.

    NOTE: Stock is not reconciled with the new quantity. The leaflets taken
    at creation stay taken; correct stock separately via the leaflets API.
    """
    if quantity is None or quantity < 0:
        raise ValidationError("Некорректное количество")

    order = _get_order(order_id)
    previous = order.quantity

    try:
        order.quantity = quantity
        append_log(
            who_did=who_did,
            what_happened=f"Изменен заказ {order.id}: выдали {quantity}",
            type=LOG_TYPE_ADVERTISING,
            event_type="LEAFLET_ORDER_QUANTITY_EDITED",
            payload={"order_id": order.id, "previous_quantity": previous, "quantity": quantity},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return order


def upload_payment_proof(*, order_id: int, file: FileStorage | None, who_did: str = "Неизвестный") -> LeafletOrder:
    """
    Attach a payment proof, mark the order DONE, and tell the admin chat.

    The notification is best-effort: a failed send is logged and the
    order stays paid. A failed commit removes the saved file again.
    """
    order = _get_order(order_id)
    if order.state in (STATE_DECLINED, STATE_CANCELLED):
        raise InvalidTransition(f"Заказ {order.id} нельзя оплатить в статусе {order.state}")

    original_name = file.filename if file is not None and file.filename else "payment"
    stamp = int(utcnow().timestamp() * 1000)
    url, _ = storage_service.save_upload(
        file,
        subdir="distribution",
        filename=f"{order.id}_{stamp}_{original_name}",
    )

    try:
        order.state = STATE_DONE
        order.payment_photo = url
        order.paid_at = utcnow()
        append_log(
            who_did=who_did,
            what_happened=f"Прикреплено фото оплаты для заказа {order.id} , заказ оплачен",
            type=LOG_TYPE_ADVERTISING,
            event_type="LEAFLET_ORDER_PAID",
            payload={"order_id": order.id, "payment_photo": url},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        storage_service.delete_upload(url)
        raise

    try:
        notification_service.send_admin_photo(
            storage_service.absolute_path_for(url),
            f"Фото оплаты для заказа #{order.id}",
        )
    except notification_service.NotificationError:
        current_app.logger.exception("Failed to send payment proof for leaflet order %s", order.id)

    return order
