"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every mutating method that
guards an invariant is a single conditional update: it either applies in full
or reports that its precondition no longer held.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ticketing.domain import (
    Discount,
    DiscountId,
    Event,
    EventId,
    InventoryUnit,
    OrganizationId,
    PaymentDetails,
    PaymentStatus,
    Product,
    ProductId,
    Purchase,
    PurchaseId,
    RefundRecord,
    StockLevel,
    Ticket,
    TicketId,
    TicketStatus,
    TicketType,
    TicketTypeId,
)


@dataclass(frozen=True)
class PurchaseFilter:
    buyer_id: int | None = None
    organization_id: OrganizationId | None = None
    # also match this buyer outside organization_id
    or_buyer_id: int | None = None
    event_id: EventId | None = None
    payment_status: PaymentStatus | None = None


@dataclass(frozen=True)
class TicketFilter:
    owner_id: int | None = None
    organization_id: OrganizationId | None = None
    # also match this owner outside organization_id
    or_owner_id: int | None = None
    event_id: EventId | None = None
    purchase_id: PurchaseId | None = None
    status: TicketStatus | None = None


class CatalogStore(ABC):
    """Read access to events, ticket types and products."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def get_ticket_type(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        """Return a ticket type by ID, or None if not found."""
        ...

    @abstractmethod
    def get_product(self, product_id: ProductId) -> Product | None:
        """Return a product with its variants, or None if not found."""
        ...


class InventoryStore(ABC):
    """Atomic stock counters for ticket types, products and variants."""

    @abstractmethod
    def reserve(self, unit: InventoryUnit, quantity: int) -> bool:
        """Move `quantity` from available to sold.

        Applies only if quantity >= requested and the unit is reservable.
        Returns False when the condition did not hold at apply time.
        """
        ...

    @abstractmethod
    def release(self, unit: InventoryUnit, quantity: int) -> bool:
        """Move `quantity` from sold back to available, if at least that many were sold."""
        ...

    @abstractmethod
    def get_stock(self, unit: InventoryUnit) -> StockLevel | None:
        """Return current counters, or None if the unit does not exist."""
        ...


class DiscountStore(ABC):
    @abstractmethod
    def get_discount(self, discount_id: DiscountId) -> Discount | None:
        ...

    @abstractmethod
    def find_by_code(self, organization_id: OrganizationId, code: str) -> Discount | None:
        """Case-insensitive lookup within one organization."""
        ...

    @abstractmethod
    def list_discounts(self, organization_id: OrganizationId) -> list[Discount]:
        ...

    @abstractmethod
    def save_discount(self, discount: Discount) -> Discount:
        """Insert or update a discount.

        Raises:
            DuplicateDiscountCodeError: If the code is taken in the organization.
        """
        ...

    @abstractmethod
    def increment_usage(self, discount_id: DiscountId) -> bool:
        """Add one use unless that would pass the usage limit."""
        ...


class PurchaseStore(ABC):
    @abstractmethod
    def create_purchase(self, purchase: Purchase) -> Purchase:
        ...

    @abstractmethod
    def get_purchase(self, purchase_id: PurchaseId) -> Purchase | None:
        ...

    @abstractmethod
    def list_purchases(self, filters: PurchaseFilter) -> list[Purchase]:
        """Return matching purchases, newest first."""
        ...

    @abstractmethod
    def transition_status(
        self,
        purchase_id: PurchaseId,
        expected: PaymentStatus,
        target: PaymentStatus,
        payment_details: PaymentDetails | None = None,
    ) -> Purchase | None:
        """Set the payment status only if it is still `expected`."""
        ...

    @abstractmethod
    def apply_refund(self, purchase_id: PurchaseId, refund: RefundRecord) -> Purchase | None:
        """Move COMPLETED to REFUNDED and append `refund`.

        Applies only if the purchase is COMPLETED and the new refund total stays
        within the total amount.
        """
        ...

    @abstractmethod
    def set_line_reserved(
        self, purchase_id: PurchaseId, unit: InventoryUnit, reserved: bool
    ) -> None:
        ...

    @abstractmethod
    def set_reconciliation(
        self, purchase_id: PurchaseId, required: bool, notes: tuple[str, ...]
    ) -> Purchase:
        ...

    @abstractmethod
    def delete_purchase(self, purchase_id: PurchaseId) -> bool:
        ...


class TicketStore(ABC):
    @abstractmethod
    def issue_tickets(self, purchase_id: PurchaseId, tickets: list[Ticket]) -> bool:
        """Persist `tickets` and flag the purchase as issued, together.

        Returns False without writing anything if tickets were already issued.
        """
        ...

    @abstractmethod
    def code_exists(self, code: str) -> bool:
        ...

    @abstractmethod
    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        ...

    @abstractmethod
    def get_by_code(self, code: str) -> Ticket | None:
        ...

    @abstractmethod
    def list_tickets(self, filters: TicketFilter) -> list[Ticket]:
        ...

    @abstractmethod
    def mark_used(
        self,
        ticket_id: TicketId,
        scanned_by: int,
        scanned_at: datetime,
        location: str | None,
    ) -> Ticket | None:
        """VALID -> USED; None if the ticket was not VALID at apply time."""
        ...

    @abstractmethod
    def invalidate_for_purchase(self, purchase_id: PurchaseId, status: TicketStatus) -> int:
        """Move every VALID ticket of the purchase to `status`; return the count."""
        ...

    @abstractmethod
    def transfer(
        self,
        ticket_id: TicketId,
        from_owner_id: int,
        to_owner_id: int,
        transferred_at: datetime,
    ) -> Ticket | None:
        """Change owner if the ticket is VALID and still owned by `from_owner_id`."""
        ...

    @abstractmethod
    def set_status(
        self, ticket_id: TicketId, expected: TicketStatus, target: TicketStatus
    ) -> Ticket | None:
        ...
