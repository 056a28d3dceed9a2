# Overview: Service-layer operations for supplier purchases; every line receives stock through the ledger.

from __future__ import annotations

import uuid

from ..extensions import db
from ..models import Purchase, PurchaseLine
from ..models.inventory import MOVEMENT_RECEIVE
from ..validation import (
    MAX_LINE_QUANTITY,
    MAX_PRICE_MINOR,
    ValidationError,
    optional_text,
    parse_positive_int,
    require_text,
)
from .concurrency import run_with_retry
from .ledger_service import apply_movement


PURCHASE_REFERENCE_TYPE = "PURCHASE"


class PurchaseError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def normalize_purchase_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items_required")

    normalized = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("invalid purchase item")
        product_id = (
            item.get("product_id")
            or item.get("productId")
            or item.get("globalProductId")
            or item.get("barcode")
        )
        # Devices send purchasePriceMinor; older payloads use unitCostMinor
        unit_cost = item.get("unit_cost_minor")
        if unit_cost is None:
            unit_cost = item.get("purchasePriceMinor")
        if unit_cost is None:
            unit_cost = item.get("unitCostMinor")
        normalized.append({
            "product_id": require_text(product_id, "product_id"),
            "name": optional_text(item.get("name") or item.get("productName")),
            "quantity": parse_positive_int(item.get("quantity"), "quantity", maximum=MAX_LINE_QUANTITY),
            "unit_cost_minor": parse_positive_int(unit_cost, "unit_cost_minor", maximum=MAX_PRICE_MINOR),
        })
    return normalized


def _record_purchase_inner(
    *,
    store_id: str,
    purchase_id: str,
    lines: list[dict],
    supplier_name: str | None,
    skip_if_exists: bool,
) -> Purchase:
    existing = db.session.query(Purchase).filter_by(id=purchase_id).first()
    if existing is not None:
        if existing.store_id != store_id:
            raise PurchaseError("Purchase id already used by another store", status_code=409)
        if skip_if_exists:
            return existing
        raise PurchaseError("Purchase already recorded", status_code=409)

    purchase = Purchase(
        id=purchase_id,
        store_id=store_id,
        supplier_name=supplier_name,
        total_minor=sum(line["quantity"] * line["unit_cost_minor"] for line in lines),
    )
    for line in lines:
        purchase.lines.append(PurchaseLine(
            product_id=line["product_id"],
            name=line["name"],
            quantity=line["quantity"],
            unit_cost_minor=line["unit_cost_minor"],
            line_total_minor=line["quantity"] * line["unit_cost_minor"],
        ))
    db.session.add(purchase)

    for line in sorted(lines, key=lambda l: l["product_id"]):
        apply_movement(
            store_id=store_id,
            product_id=line["product_id"],
            movement_type=MOVEMENT_RECEIVE,
            quantity=line["quantity"],
            unit_cost_minor=line["unit_cost_minor"],
            reference_type=PURCHASE_REFERENCE_TYPE,
            reference_id=purchase_id,
            commit=False,
        )

    db.session.flush()
    return purchase


def record_purchase(
    *,
    store_id: str,
    items,
    purchase_id: str | None = None,
    supplier_name: str | None = None,
    skip_if_exists: bool = False,
    commit: bool = True,
) -> Purchase:
    """
    Store a purchase and RECEIVE each line into stock.

    skip_if_exists: return an already recorded purchase id unchanged instead
    of failing (used by offline replay, on top of event dedup).
    """
    store_id = require_text(store_id, "store_id")
    purchase_id = optional_text(purchase_id, max_length=64) or str(uuid.uuid4())
    lines = normalize_purchase_items(items)
    kwargs = dict(
        store_id=store_id,
        purchase_id=purchase_id,
        lines=lines,
        supplier_name=optional_text(supplier_name),
        skip_if_exists=skip_if_exists,
    )

    if not commit:
        return _record_purchase_inner(**kwargs)

    def _op():
        try:
            purchase = _record_purchase_inner(**kwargs)
            db.session.commit()
            return purchase
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op)
