"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from ticketing.domain.value_objects import (
    Capacity,
    DiscountId,
    EventId,
    Identifier,
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


class UnitStatus(Enum):
    """Lifecycle of a catalog unit (event, ticket type, product, variant)."""

    ACTIVE = "active"
    HIDDEN = "hidden"
    INACTIVE = "inactive"
    DELETED = "deleted"

    @property
    def is_listed(self) -> bool:
        return self is UnitStatus.ACTIVE

    @property
    def is_reservable(self) -> bool:
        return self in (UnitStatus.ACTIVE, UnitStatus.HIDDEN)


class UnitKind(Enum):
    TICKET_TYPE = "ticket_type"
    PRODUCT = "product"
    VARIANT = "variant"


class DiscountScope(Enum):
    EVENT = "EVENT"
    PRODUCT = "PRODUCT"


class DiscountType(Enum):
    FIXED_AMOUNT = "FIXED_AMOUNT"
    PERCENTAGE = "PERCENTAGE"


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class TicketStatus(Enum):
    VALID = "valid"
    USED = "used"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    EXPIRED = "expired"
    TRANSFERRED = "transferred"


class Role(Enum):
    CUSTOMER = "customer"
    ORG_STAFF = "org_staff"
    ADMIN = "admin"


@dataclass(frozen=True)
class InventoryUnit:
    """Reference to something whose stock can be reserved."""

    kind: UnitKind
    id: Identifier

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class StockLevel:
    """Snapshot of a unit's counters."""

    unit: InventoryUnit
    quantity: Capacity
    quantity_sold: Capacity
    status: UnitStatus


@dataclass(frozen=True)
class Event:
    id: EventId
    organization_id: OrganizationId
    name: str
    currency: str
    status: UnitStatus = UnitStatus.ACTIVE


@dataclass(frozen=True)
class TicketType:
    id: TicketTypeId
    event_id: EventId
    organization_id: OrganizationId
    name: str
    price: Money
    currency: str
    quantity: Capacity
    quantity_sold: Capacity
    sales_window: SalesWindow
    status: UnitStatus = UnitStatus.ACTIVE
    min_purchase_quantity: int = 1
    max_purchase_quantity: int | None = None
    is_transferable: bool = False

    @property
    def unit(self) -> InventoryUnit:
        return InventoryUnit(UnitKind.TICKET_TYPE, self.id)

    def is_on_sale(self, moment: datetime) -> bool:
        return self.status.is_listed and self.sales_window.contains(moment)


@dataclass(frozen=True)
class ProductVariant:
    id: VariantId
    product_id: ProductId
    sku: str
    price: Money
    quantity: Capacity
    quantity_sold: Capacity
    sale_price: Money | None = None
    sale_window: SalesWindow = field(default_factory=SalesWindow)
    status: UnitStatus = UnitStatus.ACTIVE

    @property
    def unit(self) -> InventoryUnit:
        return InventoryUnit(UnitKind.VARIANT, self.id)

    def current_price(self, moment: datetime) -> Money:
        if self.sale_price is not None and self.sale_window.contains(moment):
            return self.sale_price
        return self.price


@dataclass(frozen=True)
class Product:
    id: ProductId
    organization_id: OrganizationId
    category_id: ProductCategoryId
    name: str
    currency: str
    price: Money | None
    quantity: Capacity
    quantity_sold: Capacity
    sale_price: Money | None = None
    sale_window: SalesWindow = field(default_factory=SalesWindow)
    status: UnitStatus = UnitStatus.ACTIVE
    variants: tuple[ProductVariant, ...] = ()

    @property
    def is_variable(self) -> bool:
        return bool(self.variants)

    @property
    def unit(self) -> InventoryUnit:
        return InventoryUnit(UnitKind.PRODUCT, self.id)

    def variant(self, variant_id: VariantId) -> ProductVariant | None:
        return next((v for v in self.variants if v.id == variant_id), None)

    def current_price(self, moment: datetime) -> Money:
        if self.sale_price is not None and self.sale_window.contains(moment):
            return self.sale_price
        return self.price or Money.zero()


@dataclass(frozen=True)
class Discount:
    """A reusable code scoped to one organization."""

    id: DiscountId
    organization_id: OrganizationId
    code: str
    scope: DiscountScope
    discount_type: DiscountType
    value: Decimal
    usage_count: int = 0
    usage_limit: int | None = None
    validity: SalesWindow = field(default_factory=SalesWindow)
    is_active: bool = True
    description: str = ""
    ticket_type_ids: frozenset[TicketTypeId] = frozenset()
    product_ids: frozenset[ProductId] = frozenset()
    product_category_ids: frozenset[ProductCategoryId] = frozenset()

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def is_redeemable(self, moment: datetime) -> bool:
        return self.is_active and not self.is_exhausted and self.validity.contains(moment)


@dataclass(frozen=True)
class TicketLineItem:
    ticket_type_id: TicketTypeId
    quantity: int
    unit_price: Money
    discount_amount: Money
    reserved: bool = False

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("Line quantity must be at least 1")

    @property
    def unit(self) -> InventoryUnit:
        return InventoryUnit(UnitKind.TICKET_TYPE, self.ticket_type_id)

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class ProductLineItem:
    product_id: ProductId
    quantity: int
    unit_price: Money
    discount_amount: Money
    variant_id: VariantId | None = None
    reserved: bool = False

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("Line quantity must be at least 1")

    @property
    def unit(self) -> InventoryUnit:
        if self.variant_id is not None:
            return InventoryUnit(UnitKind.VARIANT, self.variant_id)
        return InventoryUnit(UnitKind.PRODUCT, self.product_id)

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PaymentDetails:
    """Provider reference fields supplied with a payment signal."""

    transaction_id: str | None = None
    payment_reference: str | None = None
    payment_provider: str | None = None
    payment_channel: str | None = None
    payment_date: datetime | None = None
    gateway_response: dict[str, Any] | None = None


@dataclass(frozen=True)
class RefundRecord:
    amount: Money
    reason: str
    actor_id: int | None
    refunded_at: datetime


@dataclass(frozen=True)
class Purchase:
    """An order. Immutable once completed, apart from refund bookkeeping."""

    id: PurchaseId
    buyer_id: int
    organization_id: OrganizationId
    currency: str
    total_amount: Money
    discount_amount_saved: Money
    created_at: datetime
    event_id: EventId | None = None
    ticket_items: tuple[TicketLineItem, ...] = ()
    product_items: tuple[ProductLineItem, ...] = ()
    payment_method: str = ""
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_details: PaymentDetails | None = None
    applied_discount_id: DiscountId | None = None
    tickets_issued: bool = False
    refund_total: Money = field(default_factory=Money.zero)
    refunds: tuple[RefundRecord, ...] = ()
    reconciliation_required: bool = False
    reconciliation_notes: tuple[str, ...] = ()

    @property
    def line_items(self) -> tuple[TicketLineItem | ProductLineItem, ...]:
        return self.ticket_items + self.product_items

    @property
    def refundable_amount(self) -> Money:
        return self.total_amount.minus(self.refund_total)

    @property
    def all_lines_reserved(self) -> bool:
        return all(item.reserved for item in self.line_items)


@dataclass(frozen=True)
class TransferRecord:
    from_owner_id: int
    to_owner_id: int
    transferred_at: datetime


@dataclass(frozen=True)
class Ticket:
    """One redeemable admission, minted per purchased ticket unit."""

    id: TicketId
    ticket_type_id: TicketTypeId
    event_id: EventId
    organization_id: OrganizationId
    purchase_id: PurchaseId
    owner_id: int
    code: str
    payload: str
    price_at_purchase: Money
    currency: str
    created_at: datetime
    status: TicketStatus = TicketStatus.VALID
    is_transferable: bool = False
    scanned_at: datetime | None = None
    scanned_by: int | None = None
    check_in_location: str | None = None
    transfer_history: tuple[TransferRecord, ...] = ()
