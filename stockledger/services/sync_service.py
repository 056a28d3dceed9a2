# Overview: Server side of the device outbox; applies replayed events exactly once.

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import PosDevice, ProcessedEvent, Sale
from ..models.inventory import MOVEMENT_ADJUST
from ..time_utils import utcnow
from ..validation import ValidationError, optional_text, require_text
from .availability_service import InsufficientStockError
from .concurrency import run_with_retry
from .ledger_service import InsufficientStock, apply_movement
from .purchase_service import PurchaseError, record_purchase
from .sales_service import SaleError, confirm_payment, create_sale, void_sale
"""
Event sync invariants (authoritative)

- Each event runs in its own transaction.
- A ProcessedEvent row for event_id means "already applied": the event is
  acknowledged as duplicate_ignored and nothing is reapplied.
- Otherwise the business effect and the ProcessedEvent row are written in the
  same transaction (apply once, record once).
- A unique violation on processed_events at commit means a concurrent delivery
  of the same event won; this delivery is acknowledged as duplicate_ignored.
- Business rejections roll back that event only and are reported as rejected;
  the device keeps rejected events queued.
- Ordering inside a batch is the device's enqueue order.
"""

STATUS_APPLIED = "applied"
STATUS_DUPLICATE = "duplicate_ignored"
STATUS_REJECTED = "rejected"

EVENT_SALE_CREATED = "SALE_CREATED"
EVENT_PAYMENT_CASH = "PAYMENT_CASH"
EVENT_PAYMENT_DUE = "PAYMENT_DUE"
EVENT_SALE_VOIDED = "SALE_VOIDED"
EVENT_PURCHASE_SUBMIT = "PURCHASE_SUBMIT"
EVENT_STOCK_ADJUSTED = "STOCK_ADJUSTED"

DEVICE_ADJUST_REFERENCE_TYPE = "DEVICE_ADJUST"


@dataclass
class EventOutcome:
    event_id: str
    status: str
    error: str | None = None
    sale_mapping: dict | None = None

    def to_dict(self) -> dict:
        data = {"eventId": self.event_id, "status": self.status}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class SyncBatchResult:
    results: list[EventOutcome] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "saleMappings": [r.sale_mapping for r in self.results if r.sale_mapping],
        }


def _trimmed(value) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _sale_mapping(store_id: str, sale_id: str | None) -> dict | None:
    if not sale_id:
        return None
    sale = db.session.query(Sale).filter_by(id=sale_id, store_id=store_id).first()
    if sale is None:
        return None
    return {"saleId": sale_id, "serverSaleId": sale.id, "status": sale.status}


def _apply_sale_created(store_id: str, device_id: str, payload: dict) -> str:
    sale_id = require_text(payload.get("saleId"), "saleId")
    if db.session.query(Sale.id).filter_by(id=sale_id, store_id=store_id).first() is not None:
        return STATUS_DUPLICATE
    create_sale(
        store_id=store_id,
        sale_id=sale_id,
        items=payload.get("items"),
        device_id=device_id,
        discount_minor=payload.get("discountMinor") or 0,
        commit=False,
    )
    return STATUS_APPLIED


def _apply_payment(store_id: str, payload: dict, mode: str) -> str:
    confirm_payment(
        store_id=store_id,
        sale_id=require_text(payload.get("saleId"), "saleId"),
        amount_minor=payload.get("amountMinor"),
        mode=mode,
        commit=False,
    )
    return STATUS_APPLIED


def _apply_sale_voided(store_id: str, payload: dict) -> str:
    void_sale(store_id=store_id, sale_id=require_text(payload.get("saleId"), "saleId"), commit=False)
    return STATUS_APPLIED


def _apply_purchase(store_id: str, payload: dict) -> str:
    record_purchase(
        store_id=store_id,
        items=payload.get("items"),
        purchase_id=_trimmed(payload.get("purchaseId")),
        supplier_name=_trimmed(payload.get("supplierName")),
        skip_if_exists=True,
        commit=False,
    )
    return STATUS_APPLIED


def _apply_stock_adjusted(store_id: str, event_id: str, payload: dict) -> str:
    apply_movement(
        store_id=store_id,
        product_id=require_text(payload.get("productId"), "productId"),
        movement_type=MOVEMENT_ADJUST,
        quantity=payload.get("quantityDelta"),
        reason=optional_text(payload.get("reason")),
        reference_type=DEVICE_ADJUST_REFERENCE_TYPE,
        reference_id=event_id,
        commit=False,
    )
    return STATUS_APPLIED


def _apply_event_effect(store_id: str, device_id: str, event_id: str, event_type: str, payload: dict) -> str:
    if event_type == EVENT_SALE_CREATED:
        return _apply_sale_created(store_id, device_id, payload)
    if event_type == EVENT_PAYMENT_CASH:
        return _apply_payment(store_id, payload, "CASH")
    if event_type == EVENT_PAYMENT_DUE:
        return _apply_payment(store_id, payload, "DUE")
    if event_type == EVENT_SALE_VOIDED:
        return _apply_sale_voided(store_id, payload)
    if event_type == EVENT_PURCHASE_SUBMIT:
        return _apply_purchase(store_id, payload)
    if event_type == EVENT_STOCK_ADJUSTED:
        return _apply_stock_adjusted(store_id, event_id, payload)
    raise ValidationError("unknown event type")


def _already_processed(event_id: str) -> bool:
    return db.session.get(ProcessedEvent, event_id) is not None


def process_event(*, device_id: str, store_id: str, event_id: str, event_type: str, payload: dict) -> EventOutcome:
    """Apply one event exactly once. Business failures become a rejected outcome."""

    def _op():
        try:
            if _already_processed(event_id):
                db.session.rollback()
                return STATUS_DUPLICATE

            status = _apply_event_effect(store_id, device_id, event_id, event_type, payload)
            db.session.add(ProcessedEvent(
                event_id=event_id,
                device_id=device_id,
                store_id=store_id,
                event_type=event_type,
            ))
            db.session.commit()
            return status
        except Exception:
            db.session.rollback()
            raise

    try:
        status = run_with_retry(_op)
    except IntegrityError:
        db.session.rollback()
        if _already_processed(event_id):
            return EventOutcome(event_id, STATUS_DUPLICATE)
        return EventOutcome(event_id, STATUS_REJECTED, error="conflict")
    except InsufficientStockError as exc:
        return EventOutcome(event_id, STATUS_REJECTED, error=exc.summary())
    except InsufficientStock as exc:
        return EventOutcome(event_id, STATUS_REJECTED, error=f"{exc.product_id}: insufficient_stock")
    except (ValidationError, SaleError, PurchaseError) as exc:
        return EventOutcome(event_id, STATUS_REJECTED, error=str(exc))

    outcome = EventOutcome(event_id, status)
    if event_type == EVENT_SALE_CREATED:
        outcome.sale_mapping = _sale_mapping(store_id, _trimmed(payload.get("saleId")))
    return outcome


def record_device_heartbeat(device_id: str, store_id: str, pending_outbox_count: int | None = None) -> PosDevice:
    device = db.session.get(PosDevice, device_id)
    if device is None:
        db.session.add(PosDevice(id=device_id, store_id=store_id, pending_outbox_count=0))
        try:
            db.session.commit()
        except IntegrityError:
            # Another request registered the device first
            db.session.rollback()
        device = db.session.get(PosDevice, device_id)

    device.store_id = store_id
    device.last_seen_online = utcnow()
    if pending_outbox_count is not None:
        device.pending_outbox_count = pending_outbox_count
    db.session.commit()
    return device


def process_sync_batch(
    *,
    device_id: str,
    store_id: str,
    events,
    pending_outbox_count: int | None = None,
) -> SyncBatchResult:
    """
    Apply a batch of outbox events from one device, in the order given.

    Returns one outcome per event. Lock exhaustion or database failures
    propagate; the device keeps the whole batch queued and retries later.
    """
    device_id = require_text(device_id, "device_id")
    store_id = require_text(store_id, "store_id")
    if not isinstance(events, list):
        raise ValidationError("events must be an array")
    max_events = int(current_app.config.get("SYNC_MAX_EVENTS", 200))
    if len(events) > max_events:
        raise ValidationError(f"at most {max_events} events per sync")
    if pending_outbox_count is not None and pending_outbox_count < 0:
        pending_outbox_count = None

    record_device_heartbeat(device_id, store_id, pending_outbox_count)

    batch = SyncBatchResult()
    for raw in events:
        raw = raw if isinstance(raw, dict) else {}
        event_id = _trimmed(raw.get("eventId"))
        event_type = _trimmed(raw.get("type"))
        payload = raw.get("payload")
        if not isinstance(payload, dict):
            payload = {}

        if not event_id or not event_type:
            batch.results.append(EventOutcome(event_id or "unknown", STATUS_REJECTED, error="invalid event"))
            continue
        if len(event_id) > 64:
            batch.results.append(EventOutcome(event_id, STATUS_REJECTED, error="invalid event id"))
            continue

        batch.results.append(process_event(
            device_id=device_id,
            store_id=store_id,
            event_id=event_id,
            event_type=event_type,
            payload=payload,
        ))

    device = db.session.get(PosDevice, device_id)
    if device is not None:
        device.last_sync_at = utcnow()
        db.session.commit()

    return batch
