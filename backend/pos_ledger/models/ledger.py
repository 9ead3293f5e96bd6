from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class LedgerEvent(db.Model):
    """
    Append-only audit log of domain events.

    IMMUTABLE: never updated or deleted. Written in the same transaction as the
    change it records, so an event exists iff its change committed.
    """
    __tablename__ = "ledger_events"
    __table_args__ = (
        db.Index("ix_ledger_events_entity", "entity_type", "entity_id"),
        db.Index("ix_ledger_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # sale.created, sale.refunded, ...
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.String(32), nullable=False)

    # Business time; created_at is system time
    occurred_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
            "payload": self.payload,
        }
