# Overview: Async HTTP adapter between the device and the stock ledger server.

from __future__ import annotations

import httpx


class PosApiClient:
    """
    Thin wrapper over httpx.AsyncClient.

    Transport failures and non-2xx answers raise httpx.HTTPError subclasses;
    callers treat them as "offline, try later".
    """

    def __init__(
        self,
        base_url: str,
        *,
        device_id: str,
        store_id: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.device_id = device_id
        self.store_id = store_id
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "PosApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_stock(self) -> list[dict]:
        """Current on-hand quantities for the device's store: [{id, stock}]."""
        response = await self._client.get(f"/api/inventory/{self.store_id}/stock")
        response.raise_for_status()
        return response.json().get("products") or []

    async def sync(self, events: list[dict], pending_count: int | None = None) -> dict:
        response = await self._client.post(
            "/api/pos/sync",
            json={
                "deviceId": self.device_id,
                "storeId": self.store_id,
                "pendingOutboxCount": pending_count,
                "events": events,
            },
        )
        response.raise_for_status()
        return response.json()
