# Overview: Device-local mirror of store stock, keyed by product id and barcode.
"""
Client stock cache

- Entries map a key (product id or barcode) to the last known non-negative
  quantity plus the time it was written.
- Entries older than the TTL resolve as unknown (None), never as 0.
- Every update that changes at least one entry bumps `version` once and then
  calls listeners synchronously, in registration order.
- At most one network refresh is in flight; concurrent callers await it.
- Persistence is best effort: read/write failures are logged and the cache
  keeps working in memory.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

import httpx

from .stock_cap import normalize_stock

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 6 * 60 * 60


@dataclass(frozen=True)
class CacheEntry:
    stock: int
    updated_at: float


def normalize_key(value) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def stock_entries_from_products(products: Iterable[dict]) -> list[tuple[str, int]]:
    """Expand product rows ({id, barcode?, stock}) into (key, stock) pairs."""
    entries = []
    for product in products or []:
        if not isinstance(product, dict):
            continue
        raw_stock = product.get("stock")
        if isinstance(raw_stock, bool) or not isinstance(raw_stock, (int, float)):
            continue
        stock = normalize_stock(raw_stock)
        if stock is None:
            continue
        for key in (normalize_key(product.get("id")), normalize_key(product.get("barcode"))):
            if key:
                entries.append((key, stock))
    return entries


class StockCache:
    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        path: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.path = path
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._listeners: list[Callable[[], None]] = []
        self._loaded = path is None
        self._refresh_task: asyncio.Task | None = None
        self.version = 0

    # --- persistence -----------------------------------------------------

    def hydrate(self) -> None:
        """Load persisted entries once. Safe to call repeatedly."""
        if self._loaded:
            return
        self._loaded = True
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
            for key, value in (raw or {}).items():
                stock = normalize_stock(value.get("stock"))
                updated_at = value.get("updated_at")
                if stock is None or not isinstance(updated_at, (int, float)):
                    continue
                self._entries[key] = CacheEntry(stock=stock, updated_at=float(updated_at))
        except (OSError, ValueError, AttributeError):
            logger.warning("Stock cache at %s is unreadable; starting empty", self.path, exc_info=True)
            self._entries = {}

    def _persist(self) -> None:
        if not self.path:
            return
        data = {k: {"stock": e.stock, "updated_at": e.updated_at} for k, e in self._entries.items()}
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except OSError:
            logger.warning("Could not persist stock cache to %s", self.path, exc_info=True)

    # --- reads -------------------------------------------------------------

    def get(self, key) -> int | None:
        key = normalize_key(key)
        if key is None:
            return None
        self.hydrate()
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.updated_at > self.ttl_seconds:
            return None
        return entry.stock

    def resolve_stock(self, primary=None, secondary=None) -> int | None:
        """Look up the primary key, falling back to the secondary key."""
        for key in (primary, secondary):
            stock = self.get(key)
            if stock is not None:
                return stock
        return None

    def resolve_for_cart_item(self, item_id=None, barcode=None) -> int | None:
        # Scans produce barcodes, so they win over ids for cart lines
        return self.resolve_stock(barcode, item_id)

    def resolve_for_sku(self, product_id=None, barcode=None) -> int | None:
        return self.resolve_stock(product_id, barcode)

    # --- writes ------------------------------------------------------------

    def upsert_entries(self, entries: Iterable) -> bool:
        """
        Store (key, stock) pairs or {key, stock} dicts.

        Returns True when something changed (version bumped, listeners called).
        """
        self.hydrate()
        now = self._clock()
        changed = False
        for entry in entries or []:
            if isinstance(entry, dict):
                key, stock = entry.get("key"), entry.get("stock")
            else:
                key, stock = entry
            key = normalize_key(key)
            stock = normalize_stock(stock)
            if key is None or stock is None:
                continue
            self._entries[key] = CacheEntry(stock=stock, updated_at=now)
            changed = True

        if not changed:
            return False
        self._persist()
        self._notify()
        return True

    def upsert_from_products(self, products: Iterable[dict]) -> bool:
        return self.upsert_entries(stock_entries_from_products(products))

    def clear(self) -> None:
        self._entries = {}
        self._persist()
        self._notify()

    # --- listeners ---------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        self.version += 1
        for listener in list(self._listeners):
            listener()

    # --- network refresh ---------------------------------------------------

    async def refresh(self, fetch: Callable[[], Awaitable[list[dict]]]) -> bool:
        """
        Pull a fresh product/stock listing through `fetch` and apply it.

        Returns False (and leaves the cache untouched) when the device is
        offline or the server answers with an error.
        """
        if self._refresh_task is not None:
            return await self._refresh_task

        self._refresh_task = asyncio.ensure_future(self._refresh_once(fetch))
        try:
            return await self._refresh_task
        finally:
            self._refresh_task = None

    async def _refresh_once(self, fetch) -> bool:
        try:
            products = await fetch()
        except (httpx.HTTPError, ValueError) as exc:
            logger.info("Stock refresh skipped: %s", exc)
            return False
        self.upsert_from_products(products)
        return True
