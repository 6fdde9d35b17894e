# Overview: Service-layer operations for the audit log.

"""
Audit log invariants

- Append-only: rows are never updated or deleted by the application.
- Entries are written inside the same DB transaction as the change they
  describe (flush only; the caller commits or rolls back).
- what_happened is shown to people; event_type/payload are for tooling.
"""

from __future__ import annotations

import json
from typing import Any

from ..extensions import db
from ..models import LogEntry
from ..models.admin import LOG_TYPES
from ..validation import ValidationError


def append_log(
    *,
    who_did: str,
    what_happened: str,
    type: str,
    event_type: str | None = None,
    payload: dict[str, Any] | None = None,
) -> LogEntry:
    if type not in LOG_TYPES:
        raise ValidationError(f"Unknown log type: {type}")

    entry = LogEntry(
        who_did=who_did or "Неизвестный",
        what_happened=what_happened,
        type=type,
        event_type=event_type,
        payload=json.dumps(payload, ensure_ascii=False, default=str) if payload is not None else None,
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def list_logs(*, type: str | None = None, limit: int = 200, offset: int = 0) -> list[LogEntry]:
    query = db.session.query(LogEntry)
    if type:
        query = query.filter(LogEntry.type == type)
    return (
        query.order_by(LogEntry.created_at.desc(), LogEntry.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
