# Overview: Durable, ordered queue of device actions waiting to reach the server.
"""
Offline outbox

- Events are replayed in enqueue order (autoincrement sequence).
- An event leaves the queue only through mark_synced, i.e. after the server
  acknowledged it as applied or duplicate_ignored. There is no expiry.
- Rejected deliveries stay queued; attempts and the last error are recorded.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine


metadata = MetaData()

outbox_table = Table(
    "offline_outbox",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("event_id", String(64), nullable=False, unique=True),
    Column("event_type", String(32), nullable=False),
    Column("payload", Text, nullable=False),
    Column("created_at", String(40), nullable=False),
    Column("attempts", Integer, nullable=False, default=0),
    Column("last_error", Text, nullable=True),
    sqlite_autoincrement=True,
)


@dataclass(frozen=True)
class OutboxEvent:
    event_id: str
    event_type: str
    payload: dict
    created_at: str
    attempts: int = 0
    last_error: str | None = None

    def to_wire(self) -> dict:
        return {
            "eventId": self.event_id,
            "type": self.event_type,
            "payload": self.payload,
            "createdAt": self.created_at,
        }


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Outbox:
    def __init__(self, url_or_engine: str | Engine):
        if isinstance(url_or_engine, Engine):
            self.engine = url_or_engine
        else:
            url = url_or_engine if "://" in url_or_engine else f"sqlite:///{url_or_engine}"
            self.engine = create_engine(url)
        metadata.create_all(self.engine)

    def enqueue(self, event_type: str, payload: dict) -> str:
        """Append an event and return its generated id."""
        if not event_type or not str(event_type).strip():
            raise ValueError("event_type is required")
        event_id = str(uuid.uuid4())
        with self.engine.begin() as conn:
            conn.execute(outbox_table.insert().values(
                event_id=event_id,
                event_type=str(event_type).strip(),
                payload=json.dumps(payload or {}),
                created_at=_now_iso(),
                attempts=0,
            ))
        return event_id

    def pending(self, limit: int = 50) -> list[OutboxEvent]:
        stmt = select(outbox_table).order_by(outbox_table.c.seq.asc()).limit(max(1, int(limit)))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [
            OutboxEvent(
                event_id=row["event_id"],
                event_type=row["event_type"],
                payload=json.loads(row["payload"]),
                created_at=row["created_at"],
                attempts=row["attempts"],
                last_error=row["last_error"],
            )
            for row in rows
        ]

    def mark_synced(self, event_ids) -> int:
        ids = [eid for eid in event_ids if eid]
        if not ids:
            return 0
        with self.engine.begin() as conn:
            result = conn.execute(delete(outbox_table).where(outbox_table.c.event_id.in_(ids)))
        return result.rowcount

    def record_failure(self, event_id: str, error: str | None) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                update(outbox_table)
                .where(outbox_table.c.event_id == event_id)
                .values(attempts=outbox_table.c.attempts + 1, last_error=error)
            )

    def pending_count(self) -> int:
        with self.engine.connect() as conn:
            return int(conn.execute(select(func.count()).select_from(outbox_table)).scalar() or 0)

    def clear(self) -> int:
        """Drop every queued event. Unsynced stock changes are lost."""
        with self.engine.begin() as conn:
            result = conn.execute(delete(outbox_table))
        return result.rowcount
