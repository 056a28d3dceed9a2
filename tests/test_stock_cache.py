import asyncio
import json

import httpx

from stockledger.device.stock_cache import StockCache, stock_entries_from_products


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_version_bumps_once_and_listeners_run_in_order():
    cache = StockCache()
    calls = []
    cache.subscribe(lambda: calls.append(("first", cache.version)))
    cache.subscribe(lambda: calls.append(("second", cache.version)))

    assert cache.upsert_entries([("p1", 3), ("p2", 4)]) is True

    assert cache.version == 1
    assert calls == [("first", 1), ("second", 1)]
    assert cache.get("p1") == 3


def test_empty_or_invalid_update_changes_nothing():
    cache = StockCache()
    calls = []
    cache.subscribe(lambda: calls.append(cache.version))

    assert cache.upsert_entries([]) is False
    assert cache.upsert_entries([("", 3), ("p1", None), ("p2", "n/a")]) is False
    assert cache.version == 0
    assert calls == []


def test_unsubscribe_stops_notifications():
    cache = StockCache()
    calls = []
    unsubscribe = cache.subscribe(lambda: calls.append(1))

    cache.upsert_entries([("p1", 1)])
    unsubscribe()
    unsubscribe()
    cache.upsert_entries([("p1", 2)])

    assert calls == [1]
    assert cache.version == 2


def test_lookup_fallbacks():
    cache = StockCache()
    cache.upsert_entries([{"key": "590123", "stock": 7}, {"key": "prod-1", "stock": 2}])

    # Cart lines prefer the barcode, SKU lookups prefer the product id
    assert cache.resolve_for_cart_item("prod-1", "590123") == 7
    assert cache.resolve_for_cart_item("prod-1", "unknown-code") == 2
    assert cache.resolve_for_sku("prod-1", "590123") == 2
    assert cache.resolve_for_sku("missing", "590123") == 7
    assert cache.resolve_stock("missing", None) is None
    assert cache.get("  prod-1  ") == 2


def test_negative_and_fractional_stock_is_normalized():
    cache = StockCache()
    cache.upsert_entries([("a", -3), ("b", 4.8)])

    assert cache.get("a") == 0
    assert cache.get("b") == 4


def test_stale_entries_resolve_as_unknown():
    clock = FakeClock()
    cache = StockCache(ttl_seconds=60, clock=clock)
    cache.upsert_entries([("p1", 5)])

    clock.now += 59
    assert cache.get("p1") == 5
    clock.now += 2
    assert cache.get("p1") is None


def test_products_expand_to_id_and_barcode_keys():
    entries = stock_entries_from_products([
        {"id": "p1", "barcode": "111", "stock": 3},
        {"id": "p2", "stock": None},
        {"id": "p3", "stock": True},
        "junk",
    ])

    assert entries == [("p1", 3), ("111", 3)]


def test_persistence_round_trip(tmp_path):
    path = str(tmp_path / "stock.json")
    clock = FakeClock()
    cache = StockCache(path=path, clock=clock)
    cache.upsert_entries([("p1", 5)])

    with open(path, encoding="utf-8") as fh:
        assert json.load(fh)["p1"]["stock"] == 5

    restored = StockCache(path=path, clock=clock)
    assert restored.get("p1") == 5


def test_unreadable_cache_file_starts_empty(tmp_path):
    path = tmp_path / "stock.json"
    path.write_text("{not json", encoding="utf-8")

    cache = StockCache(path=str(path))

    assert cache.get("p1") is None
    assert cache.upsert_entries([("p1", 1)]) is True
    assert cache.get("p1") == 1


def test_concurrent_refreshes_share_one_fetch():
    cache = StockCache()
    calls = []

    async def fetch():
        calls.append(1)
        await asyncio.sleep(0.01)
        return [{"id": "p1", "stock": 9}]

    async def run():
        return await asyncio.gather(cache.refresh(fetch), cache.refresh(fetch), cache.refresh(fetch))

    results = asyncio.run(run())

    assert results == [True, True, True]
    assert len(calls) == 1
    assert cache.get("p1") == 9
    assert cache.version == 1


def test_refresh_offline_keeps_cache():
    cache = StockCache()
    cache.upsert_entries([("p1", 4)])

    async def fetch():
        raise httpx.ConnectError("offline")

    assert asyncio.run(cache.refresh(fetch)) is False
    assert cache.get("p1") == 4
    assert cache.version == 1

    # A later refresh is not blocked by the failed one
    async def fetch_ok():
        return [{"id": "p1", "stock": 1}]

    assert asyncio.run(cache.refresh(fetch_ok)) is True
    assert cache.get("p1") == 1
