# Overview: Append-only audit ledger of product, sale and refund events.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import LedgerEvent
from ..time_utils import utcnow
"""
Ledger invariants

- Append-only: no updates or deletes of existing events.
- No domain/business logic in the ledger itself.
- Events are written inside the same DB transaction as the change they record;
  callers commit.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_ledger_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: str,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[str] = None,
) -> LedgerEvent:
    ev = LedgerEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        occurred_at=occurred_at or utcnow(),
        note=note[:255] if note else None,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_events(
    *,
    entity_id: str | None = None,
    event_type: str | None = None,
    limit: int = 100,
) -> list[LedgerEvent]:
    """Newest first."""
    query = db.session.query(LedgerEvent)
    if entity_id:
        query = query.filter(LedgerEvent.entity_id == entity_id)
    if event_type:
        query = query.filter(LedgerEvent.event_type == event_type)
    limit = max(1, min(limit, 500))
    return query.order_by(LedgerEvent.id.desc()).limit(limit).all()
