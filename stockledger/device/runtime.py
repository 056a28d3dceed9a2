# Overview: Wires the device pieces (cache, cart, outbox, client, syncer) together.

from __future__ import annotations

import logging
import uuid

from .api_client import PosApiClient
from .cart import Cart
from .outbox import Outbox
from .sale_scope import (
    build_sale_created_payload,
    build_stock_deduction_logs,
    partition_sale_items,
)
from .settings import DeviceSettings
from .stock_cache import StockCache
from .sync import OutboxSyncer

logger = logging.getLogger(__name__)

EVENT_SALE_CREATED = "SALE_CREATED"
EVENT_PAYMENT_CASH = "PAYMENT_CASH"


class DeviceRuntime:
    def __init__(
        self,
        settings: DeviceSettings,
        *,
        cache: StockCache | None = None,
        outbox: Outbox | None = None,
        client: PosApiClient | None = None,
    ):
        self.settings = settings
        self.cache = cache or StockCache(
            ttl_seconds=settings.stock_cache_ttl,
            path=settings.stock_cache_path,
        )
        self.cache.hydrate()
        self.cart = Cart()
        self.cart.bind(self.cache)
        self.outbox = outbox or Outbox(settings.outbox_path)
        self.client = client or PosApiClient(
            settings.base_url,
            device_id=settings.device_id,
            store_id=settings.store_id,
            timeout=settings.request_timeout,
        )
        self.syncer = OutboxSyncer(self.outbox, self.client, batch_size=settings.sync_batch_size)

    async def refresh_stock(self) -> bool:
        return await self.cache.refresh(self.client.list_stock)

    def checkout_cash(self, sale_item_ids=None, *, sale_id: str | None = None, amount_minor: int | None = None) -> list[str]:
        """
        Queue a cash sale for the selected lines (all lines when none given).

        Sold lines leave the cart; deferred lines stay. Returns the stock
        deduction log lines for the sold items.
        """
        partition = partition_sale_items(self.cart.items, sale_item_ids)
        if not partition.sale_items:
            raise ValueError("nothing to sell")

        sale_id = sale_id or str(uuid.uuid4())
        payload = build_sale_created_payload(sale_id, partition)
        total = sum(item.line_total_minor for item in partition.sale_items)

        self.outbox.enqueue(EVENT_SALE_CREATED, payload)
        self.outbox.enqueue(EVENT_PAYMENT_CASH, {
            "saleId": sale_id,
            "amountMinor": amount_minor if amount_minor is not None else total,
        })

        self.cart.remove_items(item.id for item in partition.sale_items)
        logs = build_stock_deduction_logs(partition.sale_items, sale_id)
        for line in logs:
            logger.info(line)
        return logs

    async def sync(self) -> int:
        return await self.syncer.sync()

    async def aclose(self) -> None:
        self.cart.unbind()
        await self.client.aclose()
