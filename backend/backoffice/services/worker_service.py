# Overview: Service-layer operations for workers (field masters).

from __future__ import annotations

from ..extensions import db
from ..models import Worker
from ..validation import NotFoundError, ValidationError


UPDATABLE_FIELDS = {"full_name", "phone", "telegram_username"}


def create_worker(*, full_name: str, phone: str, telegram_username: str | None = None) -> Worker:
    if not full_name or not phone:
        raise ValidationError("ФИО и телефон обязательны")

    worker = Worker(full_name=full_name.strip(), phone=phone.strip(), telegram_username=telegram_username or None)
    db.session.add(worker)
    db.session.commit()
    return worker


def list_workers() -> list[Worker]:
    return db.session.query(Worker).order_by(Worker.created_at.desc(), Worker.id.desc()).all()


def list_workers_for_select() -> list[dict]:
    return [{"id": w.id, "full_name": w.full_name} for w in db.session.query(Worker).order_by(Worker.full_name).all()]


def get_worker(worker_id: int) -> Worker:
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise NotFoundError("Работник не найден")
    return worker


def update_worker(worker_id: int, patch: dict) -> Worker:
    worker = get_worker(worker_id)
    for key, value in patch.items():
        if key not in UPDATABLE_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")
        setattr(worker, key, value)
    db.session.commit()
    return worker


def delete_worker(worker_id: int) -> None:
    worker = get_worker(worker_id)
    # Detach from orders so history survives the worker
    for order in worker.orders:
        order.master_id = None
    db.session.delete(worker)
    db.session.commit()
