from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class City(db.Model):
    __tablename__ = "cities"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Leaflet(db.Model):
    """
    A print-advertisement template and its warehouse stock.

    value is the count of undistributed leaflets on hand. It is a mutable
    counter (not ledger-derived): leaflet orders decrement it on creation
    and credit returns back on completion.

    Invariant: value >= 0. Enforced by the leaflet order service, which
    locks the row and checks before decrementing; version_id catches
    concurrent writers on engines that ignore SELECT ... FOR UPDATE.
    """
    __tablename__ = "leaflets"
    __table_args__ = (
        db.CheckConstraint("value >= 0", name="ck_leaflets_value_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    value = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Leaflet id={self.id} name={self.name!r} value={self.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
