"""In-memory implementation of every ticketing store.

Each method holds one lock for its whole read-check-write, which gives the same
compare-and-swap guarantees as a conditional UPDATE on a single row.
"""

import threading
from dataclasses import replace
from datetime import datetime

from ticketing.domain import (
    Capacity,
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
    TransferRecord,
    UnitKind,
)
from ticketing.domain.errors import DuplicateDiscountCodeError
from ticketing.stores.interfaces import (
    CatalogStore,
    DiscountStore,
    InventoryStore,
    PurchaseFilter,
    PurchaseStore,
    TicketFilter,
    TicketStore,
)


class InMemoryStore(CatalogStore, InventoryStore, DiscountStore, PurchaseStore, TicketStore):
    """Process-local store used by tests and local tooling."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.events: dict[EventId, Event] = {}
        self.ticket_types: dict[TicketTypeId, TicketType] = {}
        self.products: dict[ProductId, Product] = {}
        self.discounts: dict[DiscountId, Discount] = {}
        self.purchases: dict[PurchaseId, Purchase] = {}
        self.tickets: dict[TicketId, Ticket] = {}

    # -- seeding ------------------------------------------------------------

    def add_event(self, event: Event) -> Event:
        self.events[event.id] = event
        return event

    def add_ticket_type(self, ticket_type: TicketType) -> TicketType:
        self.ticket_types[ticket_type.id] = ticket_type
        return ticket_type

    def add_product(self, product: Product) -> Product:
        self.products[product.id] = product
        return product

    # -- catalog --------------------------------------------------------------

    def get_event(self, event_id: EventId) -> Event | None:
        return self.events.get(event_id)

    def get_ticket_type(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        return self.ticket_types.get(ticket_type_id)

    def get_product(self, product_id: ProductId) -> Product | None:
        return self.products.get(product_id)

    # -- inventory ------------------------------------------------------------

    def reserve(self, unit: InventoryUnit, quantity: int) -> bool:
        with self._lock:
            stock = self.get_stock(unit)
            if stock is None or not stock.status.is_reservable:
                return False
            if stock.quantity.value < quantity:
                return False
            self._write_counters(
                unit, stock.quantity.value - quantity, stock.quantity_sold.value + quantity
            )
            return True

    def release(self, unit: InventoryUnit, quantity: int) -> bool:
        with self._lock:
            stock = self.get_stock(unit)
            if stock is None or stock.quantity_sold.value < quantity:
                return False
            self._write_counters(
                unit, stock.quantity.value + quantity, stock.quantity_sold.value - quantity
            )
            return True

    def get_stock(self, unit: InventoryUnit) -> StockLevel | None:
        with self._lock:
            holder = self._find_unit(unit)
            if holder is None:
                return None
            return StockLevel(
                unit=unit,
                quantity=holder.quantity,
                quantity_sold=holder.quantity_sold,
                status=holder.status,
            )

    def _find_unit(self, unit: InventoryUnit):
        if unit.kind is UnitKind.TICKET_TYPE:
            return self.ticket_types.get(unit.id)
        if unit.kind is UnitKind.PRODUCT:
            return self.products.get(unit.id)
        for product in self.products.values():
            variant = product.variant(unit.id)
            if variant is not None:
                return variant
        return None

    def _write_counters(self, unit: InventoryUnit, quantity: int, sold: int) -> None:
        counters = {"quantity": Capacity(quantity), "quantity_sold": Capacity(sold)}
        if unit.kind is UnitKind.TICKET_TYPE:
            self.ticket_types[unit.id] = replace(self.ticket_types[unit.id], **counters)
        elif unit.kind is UnitKind.PRODUCT:
            self.products[unit.id] = replace(self.products[unit.id], **counters)
        else:
            for product in self.products.values():
                if product.variant(unit.id) is None:
                    continue
                variants = tuple(
                    replace(v, **counters) if v.id == unit.id else v for v in product.variants
                )
                self.products[product.id] = replace(product, variants=variants)
                return

    # -- discounts ------------------------------------------------------------

    def get_discount(self, discount_id: DiscountId) -> Discount | None:
        return self.discounts.get(discount_id)

    def find_by_code(self, organization_id: OrganizationId, code: str) -> Discount | None:
        wanted = code.strip().upper()
        return next(
            (
                d
                for d in self.discounts.values()
                if d.organization_id == organization_id and d.code.upper() == wanted
            ),
            None,
        )

    def list_discounts(self, organization_id: OrganizationId) -> list[Discount]:
        return sorted(
            (d for d in self.discounts.values() if d.organization_id == organization_id),
            key=lambda d: d.code,
        )

    def save_discount(self, discount: Discount) -> Discount:
        with self._lock:
            clash = self.find_by_code(discount.organization_id, discount.code)
            if clash is not None and clash.id != discount.id:
                raise DuplicateDiscountCodeError(discount.code)
            self.discounts[discount.id] = discount
            return discount

    def increment_usage(self, discount_id: DiscountId) -> bool:
        with self._lock:
            discount = self.discounts.get(discount_id)
            if discount is None or discount.is_exhausted:
                return False
            self.discounts[discount_id] = replace(discount, usage_count=discount.usage_count + 1)
            return True

    # -- purchases ------------------------------------------------------------

    def create_purchase(self, purchase: Purchase) -> Purchase:
        with self._lock:
            self.purchases[purchase.id] = purchase
            return purchase

    def get_purchase(self, purchase_id: PurchaseId) -> Purchase | None:
        return self.purchases.get(purchase_id)

    def list_purchases(self, filters: PurchaseFilter) -> list[Purchase]:
        matches = [
            p
            for p in self.purchases.values()
            if (filters.buyer_id is None or p.buyer_id == filters.buyer_id)
            and (
                filters.organization_id is None
                or p.organization_id == filters.organization_id
                or p.buyer_id == filters.or_buyer_id
            )
            and (filters.event_id is None or p.event_id == filters.event_id)
            and (filters.payment_status is None or p.payment_status is filters.payment_status)
        ]
        return sorted(matches, key=lambda p: p.created_at, reverse=True)

    def transition_status(
        self,
        purchase_id: PurchaseId,
        expected: PaymentStatus,
        target: PaymentStatus,
        payment_details: PaymentDetails | None = None,
    ) -> Purchase | None:
        with self._lock:
            purchase = self.purchases.get(purchase_id)
            if purchase is None or purchase.payment_status is not expected:
                return None
            updated = replace(
                purchase,
                payment_status=target,
                payment_details=payment_details or purchase.payment_details,
            )
            self.purchases[purchase_id] = updated
            return updated

    def apply_refund(self, purchase_id: PurchaseId, refund: RefundRecord) -> Purchase | None:
        with self._lock:
            purchase = self.purchases.get(purchase_id)
            if purchase is None or purchase.payment_status is not PaymentStatus.COMPLETED:
                return None
            new_total = purchase.refund_total + refund.amount
            if purchase.total_amount < new_total:
                return None
            updated = replace(
                purchase,
                payment_status=PaymentStatus.REFUNDED,
                refund_total=new_total,
                refunds=purchase.refunds + (refund,),
            )
            self.purchases[purchase_id] = updated
            return updated

    def set_line_reserved(
        self, purchase_id: PurchaseId, unit: InventoryUnit, reserved: bool
    ) -> None:
        with self._lock:
            purchase = self.purchases[purchase_id]
            self.purchases[purchase_id] = replace(
                purchase,
                ticket_items=tuple(
                    replace(i, reserved=reserved) if i.unit == unit else i
                    for i in purchase.ticket_items
                ),
                product_items=tuple(
                    replace(i, reserved=reserved) if i.unit == unit else i
                    for i in purchase.product_items
                ),
            )

    def set_reconciliation(
        self, purchase_id: PurchaseId, required: bool, notes: tuple[str, ...]
    ) -> Purchase:
        with self._lock:
            updated = replace(
                self.purchases[purchase_id],
                reconciliation_required=required,
                reconciliation_notes=notes,
            )
            self.purchases[purchase_id] = updated
            return updated

    def delete_purchase(self, purchase_id: PurchaseId) -> bool:
        with self._lock:
            if self.purchases.pop(purchase_id, None) is None:
                return False
            self.tickets = {
                tid: t for tid, t in self.tickets.items() if t.purchase_id != purchase_id
            }
            return True

    # -- tickets --------------------------------------------------------------

    def issue_tickets(self, purchase_id: PurchaseId, tickets: list[Ticket]) -> bool:
        with self._lock:
            purchase = self.purchases.get(purchase_id)
            if purchase is None or purchase.tickets_issued:
                return False
            for ticket in tickets:
                self.tickets[ticket.id] = ticket
            self.purchases[purchase_id] = replace(purchase, tickets_issued=True)
            return True

    def code_exists(self, code: str) -> bool:
        return any(t.code == code for t in self.tickets.values())

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        return self.tickets.get(ticket_id)

    def get_by_code(self, code: str) -> Ticket | None:
        return next((t for t in self.tickets.values() if t.code == code), None)

    def list_tickets(self, filters: TicketFilter) -> list[Ticket]:
        matches = [
            t
            for t in self.tickets.values()
            if (filters.owner_id is None or t.owner_id == filters.owner_id)
            and (
                filters.organization_id is None
                or t.organization_id == filters.organization_id
                or t.owner_id == filters.or_owner_id
            )
            and (filters.event_id is None or t.event_id == filters.event_id)
            and (filters.purchase_id is None or t.purchase_id == filters.purchase_id)
            and (filters.status is None or t.status is filters.status)
        ]
        return sorted(matches, key=lambda t: t.created_at, reverse=True)

    def mark_used(
        self,
        ticket_id: TicketId,
        scanned_by: int,
        scanned_at: datetime,
        location: str | None,
    ) -> Ticket | None:
        with self._lock:
            ticket = self.tickets.get(ticket_id)
            if ticket is None or ticket.status is not TicketStatus.VALID:
                return None
            updated = replace(
                ticket,
                status=TicketStatus.USED,
                scanned_by=scanned_by,
                scanned_at=scanned_at,
                check_in_location=location,
            )
            self.tickets[ticket_id] = updated
            return updated

    def invalidate_for_purchase(self, purchase_id: PurchaseId, status: TicketStatus) -> int:
        with self._lock:
            changed = 0
            for ticket in list(self.tickets.values()):
                if ticket.purchase_id == purchase_id and ticket.status is TicketStatus.VALID:
                    self.tickets[ticket.id] = replace(ticket, status=status)
                    changed += 1
            return changed

    def transfer(
        self,
        ticket_id: TicketId,
        from_owner_id: int,
        to_owner_id: int,
        transferred_at: datetime,
    ) -> Ticket | None:
        with self._lock:
            ticket = self.tickets.get(ticket_id)
            if (
                ticket is None
                or ticket.status is not TicketStatus.VALID
                or ticket.owner_id != from_owner_id
            ):
                return None
            updated = replace(
                ticket,
                owner_id=to_owner_id,
                transfer_history=ticket.transfer_history
                + (TransferRecord(from_owner_id, to_owner_id, transferred_at),),
            )
            self.tickets[ticket_id] = updated
            return updated

    def set_status(
        self, ticket_id: TicketId, expected: TicketStatus, target: TicketStatus
    ) -> Ticket | None:
        with self._lock:
            ticket = self.tickets.get(ticket_id)
            if ticket is None or ticket.status is not expected:
                return None
            updated = replace(ticket, status=target)
            self.tickets[ticket_id] = updated
            return updated
