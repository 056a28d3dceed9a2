"""
Sales Service - two-phase stock deduction

WHY: A sale is recorded PENDING first and stock moves only when payment is
confirmed. Abandoned or failed checkouts never consume inventory, and a
partial checkout only deducts the lines that were actually sold.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Sale, SaleLine
from ..models.inventory import MOVEMENT_SELL
from ..models.sales import SALE_PAID, SALE_PENDING, SALE_VOIDED
from ..time_utils import utcnow
from ..validation import (
    MAX_LINE_QUANTITY,
    MAX_PRICE_MINOR,
    ValidationError,
    optional_text,
    parse_int,
    parse_positive_int,
    require_text,
)
from .availability_service import ensure_availability
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import apply_movement


PAYMENT_MODES = ("CASH", "DUE", "CARD")
SALE_REFERENCE_TYPE = "SALE"


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


def _first_present(item: dict, *keys):
    for key in keys:
        value = item.get(key)
        if value is not None and str(value).strip():
            return value
    return None


def normalize_sale_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    normalized = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("invalid sale item")
        product_id = _first_present(item, "product_id", "productId", "globalProductId", "skuId", "barcode")
        normalized.append({
            "product_id": require_text(product_id, "product_id"),
            "barcode": optional_text(item.get("barcode"), max_length=64),
            "name": optional_text(item.get("name")),
            "quantity": parse_positive_int(item.get("quantity"), "quantity", maximum=MAX_LINE_QUANTITY),
            "unit_sell_minor": parse_positive_int(
                _first_present(item, "unit_sell_minor", "priceMinor", "price_minor"),
                "unit_sell_minor",
                maximum=MAX_PRICE_MINOR,
            ),
        })
    return normalized


def create_sale(
    *,
    store_id: str,
    sale_id: str,
    items,
    device_id: str | None = None,
    discount_minor=0,
    commit: bool = True,
) -> Sale:
    """
    Record a PENDING sale after an advisory availability pre-check.

    No stock moves here. Re-submitting an existing sale id for the same store
    returns the stored sale unchanged.
    """
    store_id = require_text(store_id, "store_id")
    sale_id = require_text(sale_id, "sale_id")

    existing = db.session.query(Sale).filter_by(id=sale_id).first()
    if existing is not None:
        if existing.store_id != store_id:
            raise SaleError("Sale id already used by another store", status_code=409)
        return existing

    lines = normalize_sale_items(items)
    discount = max(0, parse_int(discount_minor or 0, "discount_minor"))

    ensure_availability(store_id, [
        {"skuId": line["product_id"], "quantity": line["quantity"], "name": line["name"]}
        for line in lines
    ])

    subtotal = sum(line["quantity"] * line["unit_sell_minor"] for line in lines)
    sale = Sale(
        id=sale_id,
        store_id=store_id,
        device_id=optional_text(device_id, max_length=64),
        status=SALE_PENDING,
        subtotal_minor=subtotal,
        discount_minor=min(discount, subtotal),
        total_minor=max(0, subtotal - discount),
    )
    for line in lines:
        sale.lines.append(SaleLine(
            product_id=line["product_id"],
            barcode=line["barcode"],
            name=line["name"],
            quantity=line["quantity"],
            unit_sell_minor=line["unit_sell_minor"],
            line_total_minor=line["quantity"] * line["unit_sell_minor"],
        ))

    db.session.add(sale)
    db.session.flush()
    if commit:
        db.session.commit()
    return sale


def _get_sale_locked(store_id: str, sale_id: str) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id, store_id=store_id)
    sale = lock_for_update(query).populate_existing().first()
    if sale is None:
        raise SaleError("Sale not found", status_code=404)
    return sale


def _confirm_payment_locked(sale: Sale, amount_minor: int | None, mode: str) -> Sale:
    if sale.status == SALE_PAID:
        return sale
    if sale.status != SALE_PENDING:
        raise SaleError(f"Cannot confirm payment for sale with status {sale.status}")
    if not sale.lines:
        raise SaleError("Cannot confirm payment for sale with no lines")

    # Fixed product order keeps lock acquisition consistent across concurrent sales
    for line in sorted(sale.lines, key=lambda l: (l.product_id, l.id)):
        apply_movement(
            store_id=sale.store_id,
            product_id=line.product_id,
            movement_type=MOVEMENT_SELL,
            quantity=line.quantity,
            unit_sell_minor=line.unit_sell_minor,
            reference_type=SALE_REFERENCE_TYPE,
            reference_id=sale.id,
            commit=False,
        )

    sale.status = SALE_PAID
    sale.payment_mode = mode
    sale.paid_amount_minor = amount_minor if amount_minor is not None else sale.total_minor
    sale.paid_at = utcnow()
    db.session.flush()
    return sale


def confirm_payment(
    *,
    store_id: str,
    sale_id: str,
    amount_minor=None,
    mode: str = "CASH",
    commit: bool = True,
) -> Sale:
    """
    Confirm payment and deduct stock for every line of the sale.

    All SELL movements and the status change share one transaction: an
    InsufficientStock on any line leaves the sale PENDING and stock untouched.
    Confirming an already PAID sale is a no-op.
    """
    store_id = require_text(store_id, "store_id")
    sale_id = require_text(sale_id, "sale_id")
    mode = (mode or "CASH").strip().upper()
    if mode not in PAYMENT_MODES:
        raise ValidationError(f"mode must be one of {', '.join(PAYMENT_MODES)}")
    amount = None
    if amount_minor is not None:
        amount = parse_positive_int(amount_minor, "amount_minor", maximum=MAX_PRICE_MINOR)

    if not commit:
        return _confirm_payment_locked(_get_sale_locked(store_id, sale_id), amount, mode)

    def _op():
        try:
            sale = _confirm_payment_locked(_get_sale_locked(store_id, sale_id), amount, mode)
            db.session.commit()
            return sale
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op)


def void_sale(*, store_id: str, sale_id: str, commit: bool = True) -> Sale:
    """Abandon a PENDING sale. No stock effect."""
    store_id = require_text(store_id, "store_id")
    sale_id = require_text(sale_id, "sale_id")

    sale = _get_sale_locked(store_id, sale_id)
    if sale.status == SALE_VOIDED:
        return sale
    if sale.status != SALE_PENDING:
        raise SaleError(f"Cannot void sale with status {sale.status}")

    sale.status = SALE_VOIDED
    sale.voided_at = utcnow()
    db.session.flush()
    if commit:
        db.session.commit()
    return sale


def get_sale(store_id: str, sale_id: str) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, store_id=store_id).first()
    if sale is None:
        raise SaleError("Sale not found", status_code=404)
    return sale
