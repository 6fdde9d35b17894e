from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


STATUS_PENDING = "PENDING"
STATUS_ON_THE_WAY = "ON_THE_WAY"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_IN_PROGRESS_SD = "IN_PROGRESS_SD"
STATUS_DONE = "DONE"
STATUS_DECLINED = "DECLINED"
STATUS_CANCEL_CC = "CANCEL_CC"
STATUS_CANCEL_BRANCH = "CANCEL_BRANCH"

ACTIVE_STATUSES = (STATUS_PENDING, STATUS_ON_THE_WAY, STATUS_IN_PROGRESS, STATUS_IN_PROGRESS_SD)
FINAL_STATUSES = (STATUS_DECLINED, STATUS_CANCEL_CC, STATUS_CANCEL_BRANCH, STATUS_DONE)

VISIT_TYPES = ("FIRST", "GARAGE", "FOLLOW_UP")


class Worker(db.Model):
    """A field master who is sent to service orders."""
    __tablename__ = "workers"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    telegram_username = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "phone": self.phone,
            "telegram_username": self.telegram_username,
            "created_at": to_utc_z(self.created_at),
        }


class Order(db.Model):
    """
    A client service visit.

    Money fields are whole currency units:
    - received: paid by the client
    - outlay: spent on parts
    - received_worker: paid out to the master
    profit = received - outlay - received_worker
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_date_done", "status", "date_done"),
        db.Index("ix_orders_notify", "is_notified", "arrive_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    full_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    address = db.Column(db.String(512), nullable=False)
    problem = db.Column(db.Text, nullable=True)

    city_id = db.Column(db.Integer, db.ForeignKey("cities.id"), nullable=False, index=True)
    leaflet_id = db.Column(db.Integer, db.ForeignKey("leaflets.id"), nullable=True, index=True)
    master_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=True, index=True)

    arrive_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    visit_type = db.Column(db.String(16), nullable=False, default="FIRST")
    call_required = db.Column(db.Boolean, nullable=False, default=False)
    is_professional = db.Column(db.Boolean, nullable=False, default=False)
    equipment_type = db.Column(db.String(64), nullable=True)
    payment_type = db.Column(db.String(32), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    received = db.Column(db.Integer, nullable=True)
    outlay = db.Column(db.Integer, nullable=True)
    received_worker = db.Column(db.Integer, nullable=True)

    # Number of times the visit was rescheduled
    time_changed_count = db.Column(db.Integer, nullable=False, default=0)

    is_notified = db.Column(db.Boolean, nullable=False, default=False)

    date_created = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    date_done = db.Column(db.DateTime(timezone=True), nullable=True)

    city = db.relationship("City", backref=db.backref("orders", lazy=True))
    leaflet = db.relationship("Leaflet", backref=db.backref("service_orders", lazy=True))
    master = db.relationship("Worker", backref=db.backref("orders", lazy=True))
    documents = db.relationship(
        "OrderDocument",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderDocument.id",
    )

    def to_dict(self, include_documents: bool = False) -> dict:
        data = {
            "id": self.id,
            "full_name": self.full_name,
            "phone": self.phone,
            "address": self.address,
            "problem": self.problem,
            "city_id": self.city_id,
            "city": self.city.to_dict() if self.city else None,
            "leaflet_id": self.leaflet_id,
            "leaflet": self.leaflet.to_dict() if self.leaflet else None,
            "master_id": self.master_id,
            "arrive_date": to_utc_z(self.arrive_date),
            "visit_type": self.visit_type,
            "call_required": self.call_required,
            "is_professional": self.is_professional,
            "equipment_type": self.equipment_type,
            "payment_type": self.payment_type,
            "status": self.status,
            "received": self.received,
            "outlay": self.outlay,
            "received_worker": self.received_worker,
            "time_changed_count": self.time_changed_count,
            "is_notified": self.is_notified,
            "date_created": to_utc_z(self.date_created),
            "date_done": to_utc_z(self.date_done),
        }
        if include_documents:
            data["documents"] = [d.to_dict() for d in self.documents]
        return data


class OrderDocument(db.Model):
    __tablename__ = "order_documents"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)
    url = db.Column(db.String(512), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "type": self.type,
            "url": self.url,
            "created_at": to_utc_z(self.created_at),
        }
