"""Catalog lookups scoped to an organization.

Ticket types, simple products and product variants are all presented to the
purchase flow as a `SellableUnit`, so pricing and stock checks are uniform.
"""

from dataclasses import dataclass, field
from datetime import datetime

from ticketing.domain import (
    Capacity,
    Event,
    EventId,
    InventoryUnit,
    Money,
    OrganizationId,
    Product,
    ProductId,
    SalesWindow,
    TicketTypeId,
    UnitStatus,
    VariantId,
)
from ticketing.domain.errors import (
    EventNotFoundError,
    InvalidCartError,
    ProductNotFoundError,
    TicketTypeNotFoundError,
    VariantNotFoundError,
)
from ticketing.domain.pricing import PricingTarget
from ticketing.stores.interfaces import CatalogStore


@dataclass(frozen=True)
class SellableUnit:
    """A priced, stock-bearing catalog item as seen at one moment."""

    unit: InventoryUnit
    name: str
    price: Money
    currency: str
    available: Capacity
    status: UnitStatus
    target: PricingTarget
    sales_window: SalesWindow = field(default_factory=SalesWindow)
    event_id: EventId | None = None
    min_quantity: int = 1
    max_quantity: int | None = None

    def is_on_sale(self, moment: datetime) -> bool:
        return self.status.is_listed and self.sales_window.contains(moment)


class CatalogService:
    """Read-only adapter over the catalog store."""

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def get_event(self, event_id: EventId) -> Event:
        """Raises EventNotFoundError for unknown or deleted events."""
        event = self._store.get_event(event_id)
        if event is None or event.status is UnitStatus.DELETED:
            raise EventNotFoundError(str(event_id))
        return event

    def get_product(self, product_id: ProductId, organization_id: OrganizationId | None = None) -> Product:
        product = self._store.get_product(product_id)
        if product is None or product.status is UnitStatus.DELETED:
            raise ProductNotFoundError(str(product_id))
        if organization_id is not None and product.organization_id != organization_id:
            raise ProductNotFoundError(str(product_id))
        return product

    def find_ticket_type_unit(
        self, ticket_type_id: TicketTypeId, organization_id: OrganizationId
    ) -> SellableUnit:
        ticket_type = self._store.get_ticket_type(ticket_type_id)
        if (
            ticket_type is None
            or ticket_type.status is UnitStatus.DELETED
            or ticket_type.organization_id != organization_id
        ):
            raise TicketTypeNotFoundError(str(ticket_type_id))
        return SellableUnit(
            unit=ticket_type.unit,
            name=ticket_type.name,
            price=ticket_type.price,
            currency=ticket_type.currency,
            available=ticket_type.quantity,
            status=ticket_type.status,
            target=PricingTarget.for_ticket_type(ticket_type.id),
            sales_window=ticket_type.sales_window,
            event_id=ticket_type.event_id,
            min_quantity=ticket_type.min_purchase_quantity,
            max_quantity=ticket_type.max_purchase_quantity,
        )

    def find_product_unit(
        self,
        product_id: ProductId,
        variant_id: VariantId | None,
        organization_id: OrganizationId,
        moment: datetime,
    ) -> SellableUnit:
        """Resolve a product line to the product itself or one of its variants.

        Raises:
            ProductNotFoundError: Unknown product, or one owned by another organization.
            VariantNotFoundError: The variant does not belong to the product.
            InvalidCartError: A variable product was requested without a variant,
                or a simple product with one.
        """
        product = self.get_product(product_id, organization_id)
        target = PricingTarget.for_product(product.id, product.category_id)

        if not product.is_variable:
            if variant_id is not None:
                raise InvalidCartError(f'Product "{product.name}" has no variations')
            return SellableUnit(
                unit=product.unit,
                name=product.name,
                price=product.current_price(moment),
                currency=product.currency,
                available=product.quantity,
                status=product.status,
                target=target,
            )

        if variant_id is None:
            raise InvalidCartError(f'variationId is required for variable product "{product.name}"')
        variant = product.variant(variant_id)
        if variant is None or variant.status is UnitStatus.DELETED:
            raise VariantNotFoundError(str(variant_id))
        status = variant.status if product.status.is_listed else product.status
        return SellableUnit(
            unit=variant.unit,
            name=f"{product.name} ({variant.sku})",
            price=variant.current_price(moment),
            currency=product.currency,
            available=variant.quantity,
            status=status,
            target=target,
        )
