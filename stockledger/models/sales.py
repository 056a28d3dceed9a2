from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


SALE_PENDING = "PENDING"
SALE_PAID = "PAID"
SALE_VOIDED = "VOIDED"


class Sale(db.Model):
    """
    Sale document.

    Two-phase lifecycle: PENDING (recorded, no stock moved) -> PAID (SELL
    movements applied) or VOIDED (abandoned, no stock moved).
    The id is generated on the device so offline replays stay idempotent.
    """
    __tablename__ = "sales"

    id = db.Column(db.String(64), primary_key=True)
    store_id = db.Column(db.String(64), nullable=False, index=True)
    device_id = db.Column(db.String(64), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default=SALE_PENDING, index=True)

    subtotal_minor = db.Column(db.Integer, nullable=False, default=0)
    discount_minor = db.Column(db.Integer, nullable=False, default=0)
    total_minor = db.Column(db.Integer, nullable=False, default=0)

    payment_mode = db.Column(db.String(16), nullable=True)
    paid_amount_minor = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy=True,
        order_by="SaleLine.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "device_id": self.device_id,
            "status": self.status,
            "subtotal_minor": self.subtotal_minor,
            "discount_minor": self.discount_minor,
            "total_minor": self.total_minor,
            "payment_mode": self.payment_mode,
            "paid_amount_minor": self.paid_amount_minor,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at),
            "voided_at": to_utc_z(self.voided_at),
            "lines": [line.to_dict() for line in self.lines],
        }


class SaleLine(db.Model):
    __tablename__ = "sale_lines"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id"), nullable=False, index=True)

    product_id = db.Column(db.String(64), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_sell_minor = db.Column(db.Integer, nullable=False)
    line_total_minor = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "barcode": self.barcode,
            "name": self.name,
            "quantity": self.quantity,
            "unit_sell_minor": self.unit_sell_minor,
            "line_total_minor": self.line_total_minor,
        }
