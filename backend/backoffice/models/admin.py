from __future__ import annotations

import json

from ..extensions import db
from backoffice.time_utils import to_utc_z


LOG_TYPE_ORDERS = "orders"
LOG_TYPE_ADVERTISING = "advertising"
LOG_TYPE_ACCOUNTS = "accounts"
LOG_TYPES = (LOG_TYPE_ORDERS, LOG_TYPE_ADVERTISING, LOG_TYPE_ACCOUNTS)


class Goal(db.Model):
    """Revenue targets shown on the admin dashboard. Singleton row id=1."""
    __tablename__ = "goals"

    id = db.Column(db.Integer, primary_key=True)
    all = db.Column(db.Integer, nullable=False, default=0)
    month = db.Column(db.Integer, nullable=False, default=0)
    day = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {"id": self.id, "all": self.all, "month": self.month, "day": self.day}


class LogEntry(db.Model):
    """
    Append-only audit log.

    what_happened is the human-readable line shown to admins; event_type
    and payload carry the same fact in typed form for tooling.
    """
    __tablename__ = "logs"
    __table_args__ = (
        db.Index("ix_logs_type_created", "type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    who_did = db.Column(db.String(255), nullable=False)
    what_happened = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(32), nullable=False, index=True)

    event_type = db.Column(db.String(64), nullable=True, index=True)  # e.g., LEAFLET_ORDER_CREATED
    payload = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "who_did": self.who_did,
            "what_happened": self.what_happened,
            "type": self.type,
            "event_type": self.event_type,
            "payload": json.loads(self.payload) if self.payload else None,
            "created_at": to_utc_z(self.created_at),
        }
