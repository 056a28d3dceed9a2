from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


class ProcessedEvent(db.Model):
    """
    Dedup marker for device-originated events.

    A row for event_id means the event's business effect has been applied;
    it is inserted in the same transaction as that effect.
    received_at drives retention cleanup (maintenance_service).
    """
    __tablename__ = "processed_events"

    event_id = db.Column(db.String(64), primary_key=True)
    device_id = db.Column(db.String(64), nullable=False, index=True)
    store_id = db.Column(db.String(64), nullable=False, index=True)
    event_type = db.Column(db.String(32), nullable=False)

    received_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "device_id": self.device_id,
            "store_id": self.store_id,
            "event_type": self.event_type,
            "received_at": to_utc_z(self.received_at),
        }


class PosDevice(db.Model):
    """Device heartbeat, refreshed on every sync call."""
    __tablename__ = "pos_devices"

    id = db.Column(db.String(64), primary_key=True)
    store_id = db.Column(db.String(64), nullable=False, index=True)

    last_seen_online = db.Column(db.DateTime(timezone=True), nullable=True)
    last_sync_at = db.Column(db.DateTime(timezone=True), nullable=True)
    pending_outbox_count = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "last_seen_online": to_utc_z(self.last_seen_online),
            "last_sync_at": to_utc_z(self.last_sync_at),
            "pending_outbox_count": self.pending_outbox_count,
        }
