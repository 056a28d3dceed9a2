from __future__ import annotations

from ..extensions import db
from stockledger.time_utils import to_utc_z


class Purchase(db.Model):
    """Stock receipt from a supplier; each line becomes one RECEIVE movement."""
    __tablename__ = "purchases"

    id = db.Column(db.String(64), primary_key=True)
    store_id = db.Column(db.String(64), nullable=False, index=True)
    supplier_name = db.Column(db.String(255), nullable=True)

    total_minor = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "PurchaseLine",
        backref="purchase",
        lazy=True,
        order_by="PurchaseLine.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "supplier_name": self.supplier_name,
            "total_minor": self.total_minor,
            "created_at": to_utc_z(self.created_at),
            "lines": [line.to_dict() for line in self.lines],
        }


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.String(64), db.ForeignKey("purchases.id"), nullable=False, index=True)

    product_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_minor = db.Column(db.Integer, nullable=False)
    line_total_minor = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_cost_minor": self.unit_cost_minor,
            "line_total_minor": self.line_total_minor,
        }
