# Overview: Splits a cart into the lines being sold now and the lines kept for later.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .cart import CartItem


@dataclass(frozen=True)
class SalePartition:
    sale_items: list[CartItem] = field(default_factory=list)
    remaining_items: list[CartItem] = field(default_factory=list)
    is_partial: bool = False


def partition_sale_items(items: Iterable[CartItem], sale_item_ids: Iterable[str] | None = None) -> SalePartition:
    """
    No selection (None or empty) sells the whole cart.

    With a selection, sale_items keeps input order and remaining_items is the
    exact complement. Only sale_items may produce SELL movements.
    """
    items = list(items)
    selected = set(sale_item_ids or ())
    if not selected:
        return SalePartition(sale_items=items, remaining_items=[], is_partial=False)

    return SalePartition(
        sale_items=[item for item in items if item.id in selected],
        remaining_items=[item for item in items if item.id not in selected],
        is_partial=True,
    )


def build_stock_deduction_logs(items: Iterable[CartItem], sale_id: str | None = None) -> list[str]:
    suffix = f":saleId={sale_id}" if sale_id else ""
    return [
        f"stock_deducted:{item.sku or item.barcode or item.id}:{item.quantity}{suffix}"
        for item in items
    ]


def build_sale_created_payload(sale_id: str, partition: SalePartition, *, discount_minor: int = 0) -> dict:
    """Outbox payload for SALE_CREATED covering only the lines being sold."""
    return {
        "saleId": sale_id,
        "discountMinor": discount_minor,
        "items": [
            {
                "productId": item.id,
                "barcode": item.barcode,
                "name": item.name,
                "quantity": item.quantity,
                "priceMinor": item.price_minor,
            }
            for item in partition.sale_items
        ],
    }
