# Overview: Service-layer operations for cities.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import City, Order
from ..validation import ConflictError, ValidationError


def add_city(name: str) -> City:
    if not name or not isinstance(name, str) or not name.strip():
        raise ValidationError("Неверное название города")

    name = name.strip()
    if db.session.query(City).filter_by(name=name).first():
        raise ConflictError("Такой город уже есть")

    city = City(name=name)
    db.session.add(city)
    db.session.commit()
    return city


def list_cities() -> list[City]:
    return db.session.query(City).order_by(City.name.asc()).all()


def list_cities_with_order_counts() -> list[dict]:
    order_count = func.count(Order.id).label("orders")
    rows = (
        db.session.query(City, order_count)
        .outerjoin(Order, Order.city_id == City.id)
        .group_by(City.id)
        .order_by(order_count.desc(), City.name.asc())
        .all()
    )
    return [{"id": city.id, "name": city.name, "orders_count": int(count)} for city, count in rows]
