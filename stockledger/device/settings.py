# stockledger/device/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .stock_cache import DEFAULT_TTL_SECONDS


def _get(env: Mapping[str, str], name: str, default: str | None = None) -> str | None:
    raw = (env.get(name) or "").strip()
    return raw or default


@dataclass(frozen=True)
class DeviceSettings:
    base_url: str
    device_id: str
    store_id: str
    outbox_path: str = "outbox.sqlite3"
    stock_cache_path: str | None = None
    request_timeout: float = 10.0
    stock_cache_ttl: float = DEFAULT_TTL_SECONDS
    sync_batch_size: int = 50

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DeviceSettings":
        """
        Read STOCKLEDGER_* variables.

        STOCKLEDGER_DEVICE_ID and STOCKLEDGER_STORE_ID are required.
        """
        env = os.environ if environ is None else environ
        device_id = _get(env, "STOCKLEDGER_DEVICE_ID")
        store_id = _get(env, "STOCKLEDGER_STORE_ID")
        if not device_id or not store_id:
            raise ValueError("STOCKLEDGER_DEVICE_ID and STOCKLEDGER_STORE_ID must be set")

        try:
            timeout = float(_get(env, "STOCKLEDGER_REQUEST_TIMEOUT", "10"))
            ttl = float(_get(env, "STOCKLEDGER_STOCK_CACHE_TTL", str(DEFAULT_TTL_SECONDS)))
            batch_size = int(_get(env, "STOCKLEDGER_SYNC_BATCH_SIZE", "50"))
        except ValueError as exc:
            raise ValueError(f"Invalid STOCKLEDGER_* setting: {exc}") from exc

        return cls(
            base_url=_get(env, "STOCKLEDGER_BASE_URL", "http://127.0.0.1:5000"),
            device_id=device_id,
            store_id=store_id,
            outbox_path=_get(env, "STOCKLEDGER_OUTBOX_PATH", "outbox.sqlite3"),
            stock_cache_path=_get(env, "STOCKLEDGER_STOCK_CACHE_PATH"),
            request_timeout=timeout,
            stock_cache_ttl=ttl,
            sync_batch_size=max(1, batch_size),
        )
