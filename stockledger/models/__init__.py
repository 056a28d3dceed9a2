from .inventory import InventorySnapshot, LedgerEntry
from .events import ProcessedEvent, PosDevice
from .sales import Sale, SaleLine
from .purchases import Purchase, PurchaseLine

__all__ = [
    'InventorySnapshot', 'LedgerEntry',
    'ProcessedEvent', 'PosDevice',
    'Sale', 'SaleLine',
    'Purchase', 'PurchaseLine',
]
