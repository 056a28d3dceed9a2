from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


MOVEMENT_RECEIVE = "RECEIVE"
MOVEMENT_SELL = "SELL"
MOVEMENT_ADJUST = "ADJUST"
MOVEMENT_TYPES = (MOVEMENT_RECEIVE, MOVEMENT_SELL, MOVEMENT_ADJUST)


class InventorySnapshot(db.Model):
    """
    Current on-hand quantity for one (store, product) pair.

    Mutated only by ledger_service.apply_movement, which appends the matching
    LedgerEntry in the same transaction. Rows are created lazily (quantity 0)
    on the first movement for a pair.

    LOCKING:
    - Writers take SELECT ... FOR UPDATE on the row (PostgreSQL, MySQL).
    - version_id is an optimistic lock column; on engines that ignore row locks
      (SQLite) a concurrent write raises StaleDataError at flush and the
      movement is retried against the fresh quantity.
    """
    __tablename__ = "store_inventory"
    __table_args__ = (
        db.CheckConstraint("available_qty >= 0", name="ck_store_inventory_non_negative"),
    )

    store_id = db.Column(db.String(64), primary_key=True)
    product_id = db.Column(db.String(64), primary_key=True)

    available_qty = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventorySnapshot store_id={self.store_id!r} product_id={self.product_id!r} qty={self.available_qty}>"

    def to_dict(self) -> dict:
        return {
            "store_id": self.store_id,
            "product_id": self.product_id,
            "available_qty": self.available_qty,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }


class LedgerEntry(db.Model):
    """
    Append-only stock movement.

    quantity_delta is signed: RECEIVE > 0, SELL < 0, ADJUST either way.
    SUM(quantity_delta) over a pair must equal InventorySnapshot.available_qty
    (checked by ledger_service.reconcile_store).
    """
    __tablename__ = "inventory_ledger"

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(db.String(36), nullable=False, unique=True)

    store_id = db.Column(db.String(64), nullable=False, index=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False)
    quantity_delta = db.Column(db.Integer, nullable=False)

    unit_cost_minor = db.Column(db.Integer, nullable=True)
    unit_sell_minor = db.Column(db.Integer, nullable=True)

    reason = db.Column(db.String(255), nullable=True)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    __table_args__ = (
        db.Index("ix_inventory_ledger_store_product", "store_id", "product_id"),
        db.Index("ix_inventory_ledger_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity_delta": self.quantity_delta,
            "unit_cost_minor": self.unit_cost_minor,
            "unit_sell_minor": self.unit_sell_minor,
            "reason": self.reason,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "created_at": to_utc_z(self.created_at),
        }
