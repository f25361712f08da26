from ticketing.domain.models import (
    Discount,
    DiscountScope,
    DiscountType,
    Event,
    InventoryUnit,
    PaymentDetails,
    PaymentStatus,
    Product,
    ProductLineItem,
    ProductVariant,
    Purchase,
    RefundRecord,
    Role,
    StockLevel,
    Ticket,
    TicketLineItem,
    TicketStatus,
    TicketType,
    TransferRecord,
    UnitKind,
    UnitStatus,
)
from ticketing.domain.value_objects import (
    Capacity,
    DiscountId,
    EventId,
    Money,
    OrganizationId,
    ProductCategoryId,
    ProductId,
    PurchaseId,
    SalesWindow,
    TicketId,
    TicketTypeId,
    VariantId,
)

__all__ = [
    "Discount",
    "DiscountScope",
    "DiscountType",
    "Event",
    "InventoryUnit",
    "PaymentDetails",
    "PaymentStatus",
    "Product",
    "ProductLineItem",
    "ProductVariant",
    "Purchase",
    "RefundRecord",
    "Role",
    "StockLevel",
    "Ticket",
    "TicketLineItem",
    "TicketStatus",
    "TicketType",
    "TransferRecord",
    "UnitKind",
    "UnitStatus",
    "Capacity",
    "DiscountId",
    "EventId",
    "Money",
    "OrganizationId",
    "ProductCategoryId",
    "ProductId",
    "PurchaseId",
    "SalesWindow",
    "TicketId",
    "TicketTypeId",
    "VariantId",
]
