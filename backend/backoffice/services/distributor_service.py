# Overview: Service-layer operations for distributors and their documents.

from __future__ import annotations

from werkzeug.datastructures import FileStorage

from ..extensions import db
from ..models import Distributor, DistributorDocument
from ..models.distribution import STATE_CANCELLED
from ..validation import NotFoundError, ValidationError
from . import storage_service


def create_distributor(*, full_name: str, phone: str, telegram: str | None = None, invited_by: str | None = None) -> Distributor:
    if not full_name or not phone:
        raise ValidationError("ФИО и телефон обязательны")

    distributor = Distributor(
        full_name=full_name.strip(),
        phone=phone.strip(),
        telegram=telegram,
        invited_by=invited_by,
    )
    db.session.add(distributor)
    db.session.commit()
    return distributor


def list_distributors() -> list[Distributor]:
    return db.session.query(Distributor).order_by(Distributor.created_at.desc(), Distributor.id.desc()).all()


def get_distributor(distributor_id: int) -> Distributor:
    distributor = db.session.get(Distributor, distributor_id)
    if distributor is None:
        raise NotFoundError("Разносчик не найден")
    return distributor


def get_distributor_with_stats(distributor_id: int) -> dict:
    """
    Distributor card: profile, documents, leaflet orders, and totals.

    Cancelled orders are left out. "stolen" is whatever was neither handed
    out nor brought back: max(quantity - given - returned, 0).
    """
    distributor = get_distributor(distributor_id)

    orders = [o for o in distributor.leaflet_orders if (o.state or "").upper() != STATE_CANCELLED]

    total_profit = 0.0
    total_given = 0
    total_returned = 0
    total_stolen = 0
    for order in orders:
        given = order.given or 0
        returned = order.returned or 0
        total_profit += order.distributor_profit or 0.0
        total_given += given
        total_returned += returned
        total_stolen += max((order.quantity or 0) - given - returned, 0)

    denominator = total_given + total_returned + total_stolen
    delivery_percent = (total_given / denominator) * 100 if denominator > 0 else 0.0

    data = distributor.to_dict(include_documents=True)
    data["leaflet_orders"] = [o.to_dict() for o in orders]
    data["stats"] = {
        "total_profit": round(total_profit, 2),
        "total_given": total_given,
        "total_returned": total_returned,
        "total_stolen": total_stolen,
        "delivery_percent": round(delivery_percent, 1),
    }
    return data


def upload_distributor_document(distributor_id: int, file: FileStorage | None) -> DistributorDocument:
    distributor = get_distributor(distributor_id)
    url, ext = storage_service.save_upload(file, subdir="distributor")

    document = DistributorDocument(distributor_id=distributor.id, type=ext.upper(), url=url)
    db.session.add(document)
    db.session.commit()
    return document


def list_distributor_documents(distributor_id: int) -> list[DistributorDocument]:
    return (
        db.session.query(DistributorDocument)
        .filter_by(distributor_id=distributor_id)
        .order_by(DistributorDocument.id.desc())
        .all()
    )
