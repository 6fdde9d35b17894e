from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


PROFIT_TYPE_MKD = "MKD"  # multi-unit dwellings
PROFIT_TYPE_CHS = "CHS"  # private sector

# Payout per distributed leaflet
PROFIT_MULTIPLIERS = {
    PROFIT_TYPE_MKD: 0.5,
    PROFIT_TYPE_CHS: 1.5,
}

STATE_IN_PROCESS = "IN_PROCESS"
STATE_FORPAYMENT = "FORPAYMENT"
STATE_DONE = "DONE"
STATE_DECLINED = "DECLINED"
STATE_CANCELLED = "CANCELLED"

LEAFLET_ORDER_STATES = (
    STATE_IN_PROCESS,
    STATE_FORPAYMENT,
    STATE_DONE,
    STATE_CANCELLED,
    STATE_DECLINED,
)


class Distributor(db.Model):
    """A person who physically hands out leaflets."""
    __tablename__ = "distributors"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    telegram = db.Column(db.String(64), nullable=True)
    invited_by = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    documents = db.relationship(
        "DistributorDocument",
        backref="distributor",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="DistributorDocument.id.desc()",
    )

    def to_dict(self, include_documents: bool = False) -> dict:
        data = {
            "id": self.id,
            "full_name": self.full_name,
            "phone": self.phone,
            "telegram": self.telegram,
            "invited_by": self.invited_by,
            "created_at": to_utc_z(self.created_at),
        }
        if include_documents:
            data["documents"] = [d.to_dict() for d in self.documents]
        return data


class DistributorDocument(db.Model):
    __tablename__ = "distributor_documents"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)
    url = db.Column(db.String(512), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "distributor_id": self.distributor_id,
            "type": self.type,
            "url": self.url,
            "created_at": to_utc_z(self.created_at),
        }


class LeafletOrder(db.Model):
    """
    One assignment of a quantity of leaflets to a distributor.

    STATE MACHINE:
        IN_PROCESS -> DONE       (full, partial, or everything returned)
        IN_PROCESS -> DECLINED   (nothing distributed, nothing returned)
        DONE/FORPAYMENT -> DONE  (payment proof attached)

    given + returned <= quantity once the order leaves IN_PROCESS.
    distributor_profit = multiplier(profit_type) * given.
    """
    __tablename__ = "leaflet_orders"
    __table_args__ = (
        db.Index("ix_leaflet_orders_state_done_at", "state", "done_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    profit_type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    square_number = db.Column(db.String(64), nullable=True)

    state = db.Column(db.String(16), nullable=False, default=STATE_IN_PROCESS, index=True)

    given = db.Column(db.Integer, nullable=True)
    returned = db.Column(db.Integer, nullable=True)
    distributor_profit = db.Column(db.Float, nullable=False, default=0.0)

    payment_photo = db.Column(db.String(512), nullable=True)

    city_id = db.Column(db.Integer, db.ForeignKey("cities.id"), nullable=False, index=True)
    leaflet_id = db.Column(db.Integer, db.ForeignKey("leaflets.id"), nullable=False, index=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    done_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    city = db.relationship("City", backref=db.backref("leaflet_orders", lazy=True))
    leaflet = db.relationship("Leaflet", backref=db.backref("orders", lazy=True))
    distributor = db.relationship("Distributor", backref=db.backref("leaflet_orders", lazy=True))

    def to_dict(self, include_relations: bool = True) -> dict:
        data = {
            "id": self.id,
            "profit_type": self.profit_type,
            "quantity": self.quantity,
            "square_number": self.square_number,
            "state": self.state,
            "given": self.given,
            "returned": self.returned,
            "distributor_profit": self.distributor_profit,
            "payment_photo": self.payment_photo,
            "city_id": self.city_id,
            "leaflet_id": self.leaflet_id,
            "distributor_id": self.distributor_id,
            "created_at": to_utc_z(self.created_at),
            "done_at": to_utc_z(self.done_at),
            "paid_at": to_utc_z(self.paid_at),
        }
        if include_relations:
            data["city"] = self.city.to_dict() if self.city else None
            data["leaflet"] = self.leaflet.to_dict() if self.leaflet else None
            data["distributor"] = self.distributor.to_dict() if self.distributor else None
        return data
