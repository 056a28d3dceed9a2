# Overview: Device cart whose quantity changes all pass through the stock cap rules.

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Callable

from .stock_cache import StockCache
from .stock_cap import (
    CapAddResult,
    CapUpdateResult,
    cap_add_quantity,
    cap_requested_quantity,
)


REASON_OUT_OF_STOCK = "out_of_stock"
REASON_CAPPED = "capped"
REASON_UNKNOWN_STOCK = "unknown_stock"


@dataclass(frozen=True)
class CartItem:
    id: str
    name: str
    price_minor: int = 0
    quantity: int = 1
    sku: str | None = None
    barcode: str | None = None

    @property
    def line_total_minor(self) -> int:
        return max(0, self.price_minor) * max(0, self.quantity)


@dataclass(frozen=True)
class StockLimitEvent:
    """Why the last quantity change did not go through as asked."""
    item_id: str
    available_stock: int
    reason: str
    requested_qty: int
    next_qty: int
    at: float


def _limit_reason(cap: CapAddResult | CapUpdateResult) -> str | None:
    if cap.unknown_stock:
        return REASON_UNKNOWN_STOCK
    if cap.out_of_stock:
        return REASON_OUT_OF_STOCK
    if cap.capped:
        return REASON_CAPPED
    return None


class Cart:
    """
    Ordered cart lines keyed by item id.

    Without a bound StockCache every lookup is unknown, so additions are
    refused; bind() a cache before scanning.
    """

    def __init__(self, cache: StockCache | None = None, *, clock: Callable[[], float] = time.time):
        self._items: list[CartItem] = []
        self._cache = cache
        self._clock = clock
        self._unsubscribe: Callable[[], None] | None = None
        self.last_stock_limit_event: StockLimitEvent | None = None

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def subtotal_minor(self) -> int:
        return sum(item.line_total_minor for item in self._items)

    def find(self, item_id: str) -> CartItem | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def _index(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return -1

    def _available_stock(self, item: CartItem) -> int | None:
        if self._cache is None:
            return None
        return self._cache.resolve_for_cart_item(item.id, item.barcode)

    def _record_limit(self, item_id: str, available: int | None, cap) -> None:
        reason = _limit_reason(cap)
        if reason is None:
            return
        self.last_stock_limit_event = StockLimitEvent(
            item_id=item_id,
            available_stock=available or 0,
            reason=reason,
            requested_qty=cap.requested_qty,
            next_qty=cap.next_qty,
            at=self._clock(),
        )

    def bind(self, cache: StockCache) -> Callable[[], None]:
        """Use `cache` for lookups and re-clamp lines whenever it changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._cache = cache
        self._unsubscribe = cache.subscribe(self.normalize_items_to_stock)
        return self.unbind

    def unbind(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def add_item(
        self,
        item_id: str,
        name: str | None = None,
        *,
        price_minor: int | None = None,
        quantity: int = 1,
        sku: str | None = None,
        barcode: str | None = None,
    ) -> CapAddResult:
        """Add `quantity` of an item. Omitted fields keep the existing line's values."""
        index = self._index(item_id)
        existing = self._items[index] if index >= 0 else None
        merged = CartItem(
            id=item_id,
            name=name if name is not None else (existing.name if existing else item_id),
            price_minor=price_minor if price_minor is not None else (existing.price_minor if existing else 0),
            quantity=existing.quantity if existing else 0,
            sku=sku if sku is not None else (existing.sku if existing else None),
            barcode=barcode if barcode is not None else (existing.barcode if existing else None),
        )

        available = self._available_stock(merged)
        cap = cap_add_quantity(merged.quantity, quantity, available)
        self._record_limit(item_id, available, cap)
        if cap.added_qty <= 0:
            return cap

        updated = replace(merged, quantity=cap.next_qty)
        if existing is not None:
            self._items[index] = updated
        else:
            self._items.append(updated)
        return cap

    def update_quantity(self, item_id: str, quantity) -> CapUpdateResult | None:
        """Set an absolute quantity. A result of 0 removes the line."""
        index = self._index(item_id)
        if index < 0:
            return None
        existing = self._items[index]

        available = self._available_stock(existing)
        cap = cap_requested_quantity(existing.quantity, quantity, available)
        self._record_limit(item_id, available, cap)

        if cap.next_qty <= 0:
            del self._items[index]
        elif cap.next_qty != existing.quantity:
            self._items[index] = replace(existing, quantity=cap.next_qty)
        return cap

    def remove_item(self, item_id: str) -> bool:
        index = self._index(item_id)
        if index < 0:
            return False
        del self._items[index]
        return True

    def remove_items(self, item_ids) -> None:
        ids = set(item_ids)
        self._items = [item for item in self._items if item.id not in ids]

    def clear(self) -> None:
        self._items = []
        self.last_stock_limit_event = None

    def normalize_items_to_stock(self) -> bool:
        """
        Re-clamp every line to the current cache.

        Lines with zero stock are dropped, lines above stock are capped, and
        lines without any cache entry are kept as they are.
        """
        changed = False
        next_items = []
        for item in self._items:
            cap = cap_requested_quantity(item.quantity, item.quantity, self._available_stock(item))
            if cap.next_qty <= 0:
                changed = True
                continue
            if cap.next_qty != item.quantity:
                changed = True
                next_items.append(replace(item, quantity=cap.next_qty))
            else:
                next_items.append(item)

        if changed:
            self._items = next_items
        return changed
