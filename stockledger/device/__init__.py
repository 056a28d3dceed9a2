# stockledger/device/__init__.py
"""
Device side of the stock ledger: stock cap rules, local stock cache, cart,
sale partitioning, offline outbox and its sync loop.

Nothing here needs Flask; the only network dependency is httpx.
"""
from .cart import Cart, CartItem, StockLimitEvent
from .outbox import Outbox, OutboxEvent
from .sale_scope import SalePartition, build_stock_deduction_logs, partition_sale_items
from .settings import DeviceSettings
from .stock_cache import StockCache
from .stock_cap import CapAddResult, CapUpdateResult, cap_add_quantity, cap_requested_quantity

__all__ = [
    "Cart",
    "CartItem",
    "StockLimitEvent",
    "Outbox",
    "OutboxEvent",
    "SalePartition",
    "build_stock_deduction_logs",
    "partition_sale_items",
    "DeviceSettings",
    "StockCache",
    "CapAddResult",
    "CapUpdateResult",
    "cap_add_quantity",
    "cap_requested_quantity",
]
