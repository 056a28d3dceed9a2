# Overview: Housekeeping for the sync dedup table.

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import ProcessedEvent
from ..time_utils import utcnow


def cleanup_processed_events(*, retention_days: int | None = None) -> int:
    """
    Delete processed-event records older than retention_days.

    Devices drop acknowledged events immediately, so a replay older than the
    retention window is not expected. Ledger rows are never touched.
    """
    if retention_days is None:
        retention_days = int(current_app.config.get("PROCESSED_EVENT_RETENTION_DAYS", 90))
    if retention_days < 1:
        raise ValueError("retention_days must be at least 1")

    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(ProcessedEvent).filter(
        ProcessedEvent.received_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
