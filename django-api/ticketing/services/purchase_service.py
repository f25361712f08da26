"""Purchase orchestrator.

Turns a cart into a priced PENDING purchase. Stock and discount usage are not
touched here; both are committed when payment completes.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime

from ticketing.collaborators import IdentityProvider, Notifier
from ticketing.domain import (
    Discount,
    EventId,
    Money,
    OrganizationId,
    PaymentStatus,
    ProductId,
    ProductLineItem,
    Purchase,
    PurchaseId,
    TicketLineItem,
    TicketTypeId,
    UnitKind,
    VariantId,
)
from ticketing.domain.errors import (
    CurrencyMismatchError,
    InsufficientStockError,
    InvalidCartError,
    InvalidQuantityError,
    NotOnSaleError,
    PurchaseNotFoundError,
    UserNotFoundError,
)
from ticketing.domain.pricing import price_unit
from ticketing.services.access import Actor
from ticketing.services.catalog_service import CatalogService, SellableUnit
from ticketing.services.common import Clock, default_clock
from ticketing.services.discount_service import DiscountService
from ticketing.stores.interfaces import PurchaseFilter, PurchaseStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartTicketItem:
    ticket_type_id: TicketTypeId
    quantity: int


@dataclass(frozen=True)
class CartProductItem:
    product_id: ProductId
    quantity: int
    variant_id: VariantId | None = None


@dataclass(frozen=True)
class Cart:
    event_id: EventId | None = None
    ticket_items: tuple[CartTicketItem, ...] = ()
    product_items: tuple[CartProductItem, ...] = ()
    payment_method: str = ""
    discount_code: str | None = None


class PurchaseService:
    def __init__(
        self,
        store: PurchaseStore,
        catalog: CatalogService,
        discounts: DiscountService,
        identity: IdentityProvider,
        notifier: Notifier,
        clock: Clock = default_clock,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._discounts = discounts
        self._identity = identity
        self._notifier = notifier
        self._clock = clock

    def create_purchase(self, cart: Cart, buyer_id: int) -> Purchase:
        """Price `cart` and persist it as a PENDING purchase.

        Raises:
            InvalidCartError: Empty cart, missing event for ticket lines, or a
                ticket type from another event.
            InvalidQuantityError: A line outside its min/max quantity.
            CurrencyMismatchError: Lines in more than one currency.
            NotOnSaleError: A unit that is hidden, inactive or outside its window.
            InvalidDiscountCodeError: The discount code cannot be redeemed.
            NotFoundError: Unknown buyer, event, ticket type, product or variant.
            InsufficientStockError: Visible stock is below the requested quantity.
        """
        if not cart.ticket_items and not cart.product_items:
            raise InvalidCartError("Purchase must include at least one ticket or product")
        if cart.ticket_items and cart.event_id is None:
            raise InvalidCartError("eventId is required when purchasing tickets")
        for line in cart.ticket_items + cart.product_items:
            if line.quantity < 1:
                raise InvalidQuantityError("Quantity must be at least 1")
        if not self._identity.user_exists(buyer_id):
            raise UserNotFoundError(buyer_id)

        now = self._clock()
        organization_id, currency = self._resolve_context(cart)
        discount = self._discount_for(cart.discount_code, organization_id)

        ticket_lines: list[TicketLineItem] = []
        for ticket_type_id, quantity in _merge(
            (i.ticket_type_id, i.quantity) for i in cart.ticket_items
        ).items():
            unit = self._catalog.find_ticket_type_unit(ticket_type_id, organization_id)
            if unit.event_id != cart.event_id:
                raise InvalidCartError(f'Ticket type "{unit.name}" does not belong to this event')
            self._check_line(unit, quantity, currency, now)
            priced = price_unit(unit.price, discount, unit.target)
            ticket_lines.append(
                TicketLineItem(
                    ticket_type_id=ticket_type_id,
                    quantity=quantity,
                    unit_price=priced.final_price,
                    discount_amount=priced.discount * quantity,
                )
            )

        product_lines: list[ProductLineItem] = []
        for (product_id, variant_id), quantity in _merge(
            ((i.product_id, i.variant_id), i.quantity) for i in cart.product_items
        ).items():
            unit = self._catalog.find_product_unit(product_id, variant_id, organization_id, now)
            self._check_line(unit, quantity, currency, now)
            priced = price_unit(unit.price, discount, unit.target)
            product_lines.append(
                ProductLineItem(
                    product_id=product_id,
                    variant_id=variant_id if unit.unit.kind is UnitKind.VARIANT else None,
                    quantity=quantity,
                    unit_price=priced.final_price,
                    discount_amount=priced.discount * quantity,
                )
            )

        lines = ticket_lines + product_lines
        total = sum((line.line_total for line in lines), Money.zero())
        saved = sum((line.discount_amount for line in lines), Money.zero())

        purchase = self._store.create_purchase(
            Purchase(
                id=PurchaseId.new(),
                buyer_id=buyer_id,
                organization_id=organization_id,
                event_id=cart.event_id,
                currency=currency,
                total_amount=total,
                discount_amount_saved=saved,
                created_at=now,
                ticket_items=tuple(ticket_lines),
                product_items=tuple(product_lines),
                payment_method=cart.payment_method,
                applied_discount_id=discount.id if discount else None,
            )
        )
        logger.info(
            "Purchase %s created for buyer %s: total %s %s",
            purchase.id,
            buyer_id,
            purchase.total_amount,
            currency,
        )
        self._notifier.notify(
            "purchase.created",
            {
                "purchaseId": str(purchase.id),
                "buyerId": buyer_id,
                "totalAmount": str(purchase.total_amount),
                "currency": currency,
            },
        )
        return purchase

    def _resolve_context(self, cart: Cart) -> tuple[OrganizationId, str]:
        if cart.event_id is not None:
            event = self._catalog.get_event(cart.event_id)
            return event.organization_id, event.currency
        first = cart.product_items[0]
        product = self._catalog.get_product(first.product_id)
        return product.organization_id, product.currency

    def _discount_for(self, code: str | None, organization_id: OrganizationId) -> Discount | None:
        if code is None or not code.strip():
            return None
        return self._discounts.validate_code(code, organization_id)

    @staticmethod
    def _check_line(unit: SellableUnit, quantity: int, currency: str, now: datetime) -> None:
        if not unit.is_on_sale(now):
            raise NotOnSaleError(unit.name)
        if unit.currency != currency:
            raise CurrencyMismatchError()
        if quantity < unit.min_quantity:
            raise InvalidQuantityError(
                f'Minimum purchase quantity for "{unit.name}" is {unit.min_quantity}'
            )
        if unit.max_quantity is not None and quantity > unit.max_quantity:
            raise InvalidQuantityError(
                f'Maximum purchase quantity for "{unit.name}" is {unit.max_quantity}'
            )
        if unit.available.value < quantity:
            raise InsufficientStockError(unit.name)

    # -- reads ----------------------------------------------------------------

    def get_purchase(self, actor: Actor, purchase_id: PurchaseId) -> Purchase:
        purchase = self._store.get_purchase(purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(str(purchase_id))
        actor.ensure_can_see(purchase.buyer_id, purchase.organization_id, f"purchase {purchase_id}")
        return purchase

    def list_purchases(
        self,
        actor: Actor,
        status: PaymentStatus | None = None,
        event_id: EventId | None = None,
        buyer_id: int | None = None,
    ) -> list[Purchase]:
        """List purchases visible to `actor`.

        Customers always see only their own; `buyer_id` narrows staff and admin
        listings and is ignored for customers.
        """
        own = actor.buyer_scope()
        return self._store.list_purchases(
            PurchaseFilter(
                buyer_id=own if own is not None else buyer_id,
                organization_id=actor.organization_scope(),
                or_buyer_id=actor.own_scope(),
                event_id=event_id,
                payment_status=status,
            )
        )

    def get_managed_purchase(self, actor: Actor, purchase_id: PurchaseId) -> Purchase:
        """A purchase the actor may refund: staff of its organization, or an admin."""
        purchase = self._store.get_purchase(purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(str(purchase_id))
        actor.ensure_staff_of(purchase.organization_id, f"purchase {purchase_id}")
        return purchase

    def purge_purchase(self, actor: Actor, purchase_id: PurchaseId) -> None:
        """Hard-delete a purchase with its lines, refunds and tickets."""
        actor.ensure_admin(f"purchase {purchase_id}")
        if not self._store.delete_purchase(purchase_id):
            raise PurchaseNotFoundError(str(purchase_id))
        logger.warning("Purchase %s purged by user %s", purchase_id, actor.user_id)


def _merge(pairs) -> "OrderedDict":
    """Sum quantities of repeated lines, keeping first-seen order."""
    merged: OrderedDict = OrderedDict()
    for key, quantity in pairs:
        merged[key] = merged.get(key, 0) + quantity
    return merged
