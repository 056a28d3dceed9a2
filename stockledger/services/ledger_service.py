# Overview: Service-layer operations for the inventory ledger; the only write path for on-hand stock.

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import func

from ..extensions import db
from ..models import InventorySnapshot, LedgerEntry
from ..models.inventory import MOVEMENT_ADJUST, MOVEMENT_RECEIVE, MOVEMENT_TYPES
from ..validation import (
    MAX_LINE_QUANTITY,
    MAX_STOCK_QUANTITY,
    ValidationError,
    optional_text,
    parse_int,
    parse_optional_minor,
    parse_positive_int,
    require_text,
)
from .concurrency import lock_for_update, run_with_retry
"""
Inventory Ledger Invariants (authoritative)

- InventorySnapshot.available_qty is the O(1) "on hand now" value.
- Every change to it appends exactly one LedgerEntry in the same transaction.
- SUM(LedgerEntry.quantity_delta) for a (store, product) pair equals the
  snapshot quantity; reconcile_store() reports pairs where it does not.
- available_qty never goes below zero. A movement that would do so raises
  InsufficientStock and writes nothing.
- Concurrent movements on the same pair serialize on the snapshot row lock
  (or its version_id on SQLite); different pairs never contend.

Movement quantity semantics:
- RECEIVE: quantity > 0, delta = +quantity
- SELL:    quantity > 0, delta = -quantity
- ADJUST:  quantity is a signed, non-zero delta
"""


class InsufficientStock(ValueError):
    """A movement would drive on-hand quantity below zero. Never retried."""

    def __init__(self, *, store_id: str, product_id: str, available: int, delta: int):
        super().__init__("insufficient_stock")
        self.store_id = store_id
        self.product_id = product_id
        self.available = available
        self.delta = delta

    def to_dict(self) -> dict:
        return {
            "error": "insufficient_stock",
            "store_id": self.store_id,
            "product_id": self.product_id,
            "available": self.available,
            "requested": abs(self.delta),
        }


@dataclass(frozen=True)
class MovementResult:
    previous_qty: int
    next_qty: int
    delta: int
    entry: LedgerEntry

    def to_dict(self) -> dict:
        return {
            "previous_qty": self.previous_qty,
            "next_qty": self.next_qty,
            "delta": self.delta,
            "entry": self.entry.to_dict(),
        }


def normalize_delta(movement_type: str, quantity) -> int:
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"movement_type must be one of {', '.join(MOVEMENT_TYPES)}")

    if movement_type == MOVEMENT_ADJUST:
        delta = parse_int(quantity, "quantity")
        if delta == 0:
            raise ValidationError("quantity must be non-zero for ADJUST")
        if abs(delta) > MAX_LINE_QUANTITY:
            raise ValidationError(f"quantity must be at most {MAX_LINE_QUANTITY} in either direction")
        return delta

    qty = parse_positive_int(quantity, "quantity", maximum=MAX_LINE_QUANTITY)
    return qty if movement_type == MOVEMENT_RECEIVE else -qty


def _normalize_pair(store_id, product_id) -> tuple[str, str]:
    store = (str(store_id).strip() if store_id is not None else "")
    product = (str(product_id).strip() if product_id is not None else "")
    if not store or not product:
        raise ValidationError("store_or_product_missing")
    # Both ids live in String(64) columns
    return require_text(store, "store_id"), require_text(product, "product_id")


def _insert_snapshot_if_absent(store_id: str, product_id: str) -> None:
    """
    Create the (store, product) row at quantity 0 unless it already exists.

    Uses INSERT ... ON CONFLICT DO NOTHING so two first movements racing on a
    new pair both proceed to the locking SELECT instead of one failing.
    """
    dialect = db.session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        exists = db.session.query(InventorySnapshot.store_id).filter_by(
            store_id=store_id, product_id=product_id
        ).first()
        if exists is None:
            db.session.add(InventorySnapshot(store_id=store_id, product_id=product_id, available_qty=0))
            db.session.flush()
        return

    stmt = insert(InventorySnapshot.__table__).values(
        store_id=store_id,
        product_id=product_id,
        available_qty=0,
        version_id=1,
    ).on_conflict_do_nothing(index_elements=["store_id", "product_id"])
    db.session.execute(stmt)


def _lock_snapshot(store_id: str, product_id: str) -> InventorySnapshot:
    _insert_snapshot_if_absent(store_id, product_id)
    query = db.session.query(InventorySnapshot).filter_by(store_id=store_id, product_id=product_id)
    # populate_existing: a retried attempt must see the committed quantity, not the identity map's
    return lock_for_update(query).populate_existing().one()


def _apply_movement_locked(
    *,
    store_id: str,
    product_id: str,
    movement_type: str,
    delta: int,
    unit_cost_minor: int | None,
    unit_sell_minor: int | None,
    reason: str | None,
    reference_type: str | None,
    reference_id: str | None,
) -> MovementResult:
    snapshot = _lock_snapshot(store_id, product_id)

    current = int(snapshot.available_qty or 0)
    next_qty = current + delta
    if next_qty > MAX_STOCK_QUANTITY:
        raise ValidationError(f"on-hand quantity would exceed {MAX_STOCK_QUANTITY}")
    if next_qty < 0:
        raise InsufficientStock(
            store_id=store_id,
            product_id=product_id,
            available=current,
            delta=delta,
        )

    snapshot.available_qty = next_qty

    entry = LedgerEntry(
        entry_id=str(uuid.uuid4()),
        store_id=store_id,
        product_id=product_id,
        movement_type=movement_type,
        quantity_delta=delta,
        unit_cost_minor=unit_cost_minor,
        unit_sell_minor=unit_sell_minor,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    db.session.add(entry)
    db.session.flush()

    return MovementResult(previous_qty=current, next_qty=next_qty, delta=delta, entry=entry)


def apply_movement(
    *,
    store_id: str,
    product_id: str,
    movement_type: str,
    quantity,
    unit_cost_minor=None,
    unit_sell_minor=None,
    reason: str | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
    commit: bool = True,
) -> MovementResult:
    """
    Apply one stock movement and append its ledger entry atomically.

    commit=True: runs in its own transaction, retried on lock timeouts and
    version conflicts, and committed.
    commit=False: only flushes; the caller owns the transaction (and its
    retry), so several movements plus caller rows commit or roll back together.

    Raises ValidationError for bad input and InsufficientStock when the
    projected quantity would be negative. Neither is retried.
    """
    store_id, product_id = _normalize_pair(store_id, product_id)
    movement_type = (movement_type or "").strip().upper()
    delta = normalize_delta(movement_type, quantity)

    kwargs = dict(
        store_id=store_id,
        product_id=product_id,
        movement_type=movement_type,
        delta=delta,
        unit_cost_minor=parse_optional_minor(unit_cost_minor, "unit_cost_minor"),
        unit_sell_minor=parse_optional_minor(unit_sell_minor, "unit_sell_minor"),
        reason=optional_text(reason),
        reference_type=optional_text(reference_type, max_length=32),
        reference_id=optional_text(reference_id, max_length=64),
    )

    if not commit:
        return _apply_movement_locked(**kwargs)

    def _op():
        try:
            result = _apply_movement_locked(**kwargs)
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op)


def fetch_ledger_stock(store_id: str, product_id: str) -> int:
    """
    Recompute on-hand quantity from the ledger (audit path).

    The hot path for availability reads the snapshot instead.
    """
    store_id, product_id = _normalize_pair(store_id, product_id)
    total = db.session.query(
        func.coalesce(func.sum(LedgerEntry.quantity_delta), 0)
    ).filter(
        LedgerEntry.store_id == store_id,
        LedgerEntry.product_id == product_id,
    ).scalar()
    return int(total or 0)


def get_snapshot_quantity(store_id: str, product_id: str) -> int:
    store_id, product_id = _normalize_pair(store_id, product_id)
    qty = db.session.query(InventorySnapshot.available_qty).filter_by(
        store_id=store_id, product_id=product_id
    ).scalar()
    return int(qty or 0)


def get_snapshot_quantities(store_id: str, product_ids) -> dict[str, int]:
    """Batch read (single round trip). Pairs without a row are reported as 0."""
    store_id = require_text(store_id, "store_id")
    ids = sorted({str(pid).strip() for pid in product_ids if pid is not None and str(pid).strip()})
    if not ids:
        return {}

    rows = db.session.query(
        InventorySnapshot.product_id, InventorySnapshot.available_qty
    ).filter(
        InventorySnapshot.store_id == store_id,
        InventorySnapshot.product_id.in_(ids),
    ).all()

    quantities = {pid: 0 for pid in ids}
    for product_id, qty in rows:
        quantities[product_id] = max(0, int(qty or 0))
    return quantities


def list_store_stock(store_id: str) -> list[InventorySnapshot]:
    store_id = require_text(store_id, "store_id")
    return (
        db.session.query(InventorySnapshot)
        .filter_by(store_id=store_id)
        .order_by(InventorySnapshot.product_id.asc())
        .all()
    )


def list_ledger_entries(
    store_id: str,
    *,
    product_id: str | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
    limit: int = 100,
) -> list[LedgerEntry]:
    """Ledger rows oldest first."""
    store_id = require_text(store_id, "store_id")
    q = db.session.query(LedgerEntry).filter(LedgerEntry.store_id == store_id)
    if product_id:
        q = q.filter(LedgerEntry.product_id == product_id)
    if reference_type:
        q = q.filter(LedgerEntry.reference_type == reference_type)
    if reference_id:
        q = q.filter(LedgerEntry.reference_id == reference_id)
    limit = max(1, min(int(limit), 1000))
    return q.order_by(LedgerEntry.id.asc()).limit(limit).all()


def reconcile_store(store_id: str | None = None) -> list[dict]:
    """
    Compare every snapshot with its ledger sum.

    Returns one drift record per (store, product) pair where they differ,
    including pairs that have ledger rows but no snapshot. Empty list means
    the audit invariant holds.
    """
    ledger_q = db.session.query(
        LedgerEntry.store_id,
        LedgerEntry.product_id,
        func.coalesce(func.sum(LedgerEntry.quantity_delta), 0),
    ).group_by(LedgerEntry.store_id, LedgerEntry.product_id)
    snapshot_q = db.session.query(InventorySnapshot)
    if store_id is not None:
        ledger_q = ledger_q.filter(LedgerEntry.store_id == store_id)
        snapshot_q = snapshot_q.filter(InventorySnapshot.store_id == store_id)

    ledger_totals = {
        (row_store, row_product): int(total or 0)
        for row_store, row_product, total in ledger_q.all()
    }

    drift = []
    seen = set()
    for snapshot in snapshot_q.all():
        key = (snapshot.store_id, snapshot.product_id)
        seen.add(key)
        ledger_qty = ledger_totals.get(key, 0)
        if ledger_qty != snapshot.available_qty:
            drift.append({
                "store_id": snapshot.store_id,
                "product_id": snapshot.product_id,
                "snapshot_qty": snapshot.available_qty,
                "ledger_qty": ledger_qty,
            })

    for key, ledger_qty in ledger_totals.items():
        if key in seen or ledger_qty == 0:
            continue
        drift.append({
            "store_id": key[0],
            "product_id": key[1],
            "snapshot_qty": 0,
            "ledger_qty": ledger_qty,
        })

    drift.sort(key=lambda d: (d["store_id"], d["product_id"]))
    return drift
