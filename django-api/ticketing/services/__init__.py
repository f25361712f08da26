from ticketing.services.access import Actor
from ticketing.services.catalog_service import CatalogService, SellableUnit
from ticketing.services.discount_service import DiscountDraft, DiscountService
from ticketing.services.inventory_service import InventoryService
from ticketing.services.payment_service import PaymentService
from ticketing.services.purchase_service import (
    Cart,
    CartProductItem,
    CartTicketItem,
    PurchaseService,
)
from ticketing.services.ticket_service import TicketService

__all__ = [
    "Actor",
    "Cart",
    "CartProductItem",
    "CartTicketItem",
    "CatalogService",
    "DiscountDraft",
    "DiscountService",
    "InventoryService",
    "PaymentService",
    "PurchaseService",
    "SellableUnit",
    "TicketService",
]
