"""Discount applicability and line pricing.

Pure functions: no store access, no clock.
"""

from dataclasses import dataclass
from decimal import Decimal

from ticketing.domain.models import Discount, DiscountScope, DiscountType, UnitKind
from ticketing.domain.value_objects import (
    Money,
    ProductCategoryId,
    ProductId,
    TicketTypeId,
)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PricingTarget:
    """What a discount is matched against for a single line."""

    kind: UnitKind
    ticket_type_id: TicketTypeId | None = None
    product_id: ProductId | None = None
    category_id: ProductCategoryId | None = None

    @classmethod
    def for_ticket_type(cls, ticket_type_id: TicketTypeId) -> "PricingTarget":
        return cls(kind=UnitKind.TICKET_TYPE, ticket_type_id=ticket_type_id)

    @classmethod
    def for_product(
        cls, product_id: ProductId, category_id: ProductCategoryId | None
    ) -> "PricingTarget":
        return cls(kind=UnitKind.PRODUCT, product_id=product_id, category_id=category_id)


@dataclass(frozen=True)
class PricedUnit:
    base_price: Money
    final_price: Money
    discount: Money


def is_applicable(discount: Discount, target: PricingTarget) -> bool:
    """Whether `discount` may reduce the price of `target`.

    The scope must match the line kind; an empty applicability set means every
    item in scope qualifies.
    """
    if discount.scope is DiscountScope.EVENT:
        if target.kind is not UnitKind.TICKET_TYPE:
            return False
        return not discount.ticket_type_ids or target.ticket_type_id in discount.ticket_type_ids

    if target.kind is UnitKind.TICKET_TYPE:
        return False
    if not discount.product_ids and not discount.product_category_ids:
        return True
    if target.product_id in discount.product_ids:
        return True
    return target.category_id is not None and target.category_id in discount.product_category_ids


def unit_discount(discount: Discount, base_price: Money) -> Money:
    if discount.discount_type is DiscountType.FIXED_AMOUNT:
        return Money(discount.value)
    return Money(base_price.amount * discount.value / HUNDRED)


def price_unit(base_price: Money, discount: Discount | None, target: PricingTarget) -> PricedUnit:
    """Price one unit: max(0, base - discount) when the discount applies."""
    if discount is None or not is_applicable(discount, target):
        return PricedUnit(base_price=base_price, final_price=base_price, discount=Money.zero())
    final_price = base_price.minus(unit_discount(discount, base_price))
    return PricedUnit(
        base_price=base_price,
        final_price=final_price,
        discount=Money(base_price.amount - final_price.amount),
    )
