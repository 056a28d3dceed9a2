# Overview: Flushes the offline outbox to the server in enqueue order.

from __future__ import annotations

import logging

import httpx

from .api_client import PosApiClient
from .outbox import Outbox

logger = logging.getLogger(__name__)

ACKED_STATUSES = ("applied", "duplicate_ignored")
STATUS_REJECTED = "rejected"


class OutboxSyncer:
    """
    One batch at a time: post the oldest pending events, drop the ones the
    server acknowledged, record errors on rejected ones.

    Any transport or HTTP failure leaves the whole batch queued.
    """

    def __init__(self, outbox: Outbox, client: PosApiClient, *, batch_size: int = 50):
        self.outbox = outbox
        self.client = client
        self.batch_size = batch_size
        self.sale_mappings: dict[str, str] = {}
        self._syncing = False

    async def sync_batch(self) -> int:
        """Returns how many events were acknowledged (and removed)."""
        events = self.outbox.pending(self.batch_size)
        if not events:
            return 0

        try:
            data = await self.client.sync(
                [event.to_wire() for event in events],
                pending_count=self.outbox.pending_count(),
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Outbox sync failed, %s event(s) stay queued: %s", len(events), exc)
            return 0

        sent_ids = {event.event_id for event in events}
        acked = []
        for result in data.get("results") or []:
            event_id = result.get("eventId")
            if event_id not in sent_ids:
                continue
            status = result.get("status")
            if status in ACKED_STATUSES:
                acked.append(event_id)
            elif status == STATUS_REJECTED:
                logger.warning("Server rejected event %s: %s", event_id, result.get("error"))
                self.outbox.record_failure(event_id, result.get("error"))

        for mapping in data.get("saleMappings") or []:
            if mapping.get("saleId") and mapping.get("serverSaleId"):
                self.sale_mappings[mapping["saleId"]] = mapping["serverSaleId"]

        self.outbox.mark_synced(acked)
        return len(acked)

    async def sync(self) -> int:
        """
        Flush batches until a batch acknowledges nothing.

        A call made while another sync is running returns 0 immediately.
        """
        if self._syncing:
            return 0
        self._syncing = True
        total = 0
        try:
            while True:
                acked = await self.sync_batch()
                if acked <= 0:
                    break
                total += acked
        finally:
            self._syncing = False
        return total
