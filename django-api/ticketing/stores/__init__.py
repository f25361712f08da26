from ticketing.stores.interfaces import (
    CatalogStore,
    DiscountStore,
    InventoryStore,
    PurchaseFilter,
    PurchaseStore,
    TicketFilter,
    TicketStore,
)
from ticketing.stores.memory_store import InMemoryStore

__all__ = [
    "CatalogStore",
    "DiscountStore",
    "InMemoryStore",
    "InventoryStore",
    "PurchaseFilter",
    "PurchaseStore",
    "TicketFilter",
    "TicketStore",
]
