# Overview: Advisory stock pre-check run before a sale is recorded or confirmed.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..validation import ValidationError, parse_int, require_text
from .ledger_service import get_snapshot_quantities
"""
Availability Guard semantics

- Read-only: reads snapshots in one batch query, takes no lock.
- Every short item is reported; the check never stops at the first shortage.
- Lines for the same product are summed before comparing.
- The check is advisory. apply_movement re-validates under the row lock and is
  the final authority; a sale that passes here may still be rejected there.
"""


@dataclass(frozen=True)
class StockShortage:
    sku_id: str
    available: int
    required: int
    name: str | None = None

    @property
    def message(self) -> str:
        return f"Stock changed. Available: {self.available}"

    def to_dict(self) -> dict:
        return {
            "skuId": self.sku_id,
            "available": self.available,
            "required": self.required,
            "name": self.name,
            "message": self.message,
        }


class InsufficientStockError(Exception):
    """One or more requested items exceed on-hand stock."""

    def __init__(self, shortages: list[StockShortage]):
        super().__init__("insufficient_stock")
        self.shortages = list(shortages)

    @property
    def details(self) -> list[dict]:
        return [s.to_dict() for s in self.shortages]

    def summary(self) -> str:
        if not self.shortages:
            return "insufficient_stock"
        return "; ".join(f"{s.sku_id}: {s.message}" for s in self.shortages)


def _required_by_product(items: Iterable[dict]) -> dict[str, dict]:
    required: dict[str, dict] = {}
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("invalid availability item")
        sku_id = item.get("skuId") or item.get("sku_id") or item.get("product_id")
        if sku_id is None or not str(sku_id).strip():
            continue
        quantity = parse_int(item.get("quantity", 0), "quantity")
        if quantity <= 0:
            continue

        key = str(sku_id).strip()
        entry = required.get(key)
        if entry is None:
            required[key] = {"required": quantity, "name": item.get("name")}
        else:
            entry["required"] += quantity
            if not entry["name"] and item.get("name"):
                entry["name"] = item.get("name")
    return required


def check_availability(store_id: str, items: Iterable[dict]) -> list[StockShortage]:
    """
    Return every shortage for the requested items (empty list when all fit).

    Items are dicts with skuId (or sku_id / product_id), quantity, optional name.
    """
    store_id = require_text(store_id, "store_id")
    required = _required_by_product(items)
    if not required:
        return []

    available_by_product = get_snapshot_quantities(store_id, required.keys())

    shortages = []
    for sku_id, payload in required.items():
        available = available_by_product.get(sku_id, 0)
        if payload["required"] > available:
            shortages.append(StockShortage(
                sku_id=sku_id,
                available=available,
                required=payload["required"],
                name=payload["name"],
            ))
    return shortages


def ensure_availability(store_id: str, items: Iterable[dict]) -> None:
    """Raise InsufficientStockError carrying all shortages, if any."""
    shortages = check_availability(store_id, items)
    if shortages:
        raise InsufficientStockError(shortages)
