"""Discount engine: code validation, applicability and usage accounting.

Also carries the organization-staff administration of discount codes.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation

from ticketing.domain import (
    Discount,
    DiscountId,
    DiscountScope,
    DiscountType,
    OrganizationId,
    ProductCategoryId,
    ProductId,
    SalesWindow,
    TicketTypeId,
)
from ticketing.domain.errors import (
    DiscountNotFoundError,
    InvalidDiscountCodeError,
    InvalidDiscountError,
)
from ticketing.services.access import Actor
from ticketing.services.common import Clock, default_clock
from ticketing.stores.interfaces import DiscountStore

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class DiscountDraft:
    """Editable fields of a discount, as submitted by staff."""

    code: str
    discount_type: DiscountType
    value: Decimal
    scope: DiscountScope | None = None
    usage_limit: int | None = None
    validity: SalesWindow = field(default_factory=SalesWindow)
    is_active: bool = True
    description: str = ""
    ticket_type_ids: frozenset[TicketTypeId] = frozenset()
    product_ids: frozenset[ProductId] = frozenset()
    product_category_ids: frozenset[ProductCategoryId] = frozenset()


class DiscountService:
    def __init__(self, store: DiscountStore, clock: Clock = default_clock) -> None:
        self._store = store
        self._clock = clock

    def validate_code(self, code: str, organization_id: OrganizationId) -> Discount:
        """Return the redeemable discount for `code` in the organization.

        Raises:
            InvalidDiscountCodeError: Unknown, inactive, expired, not yet valid
                or exhausted. The cases are not distinguished.
        """
        if not code or not code.strip():
            raise InvalidDiscountCodeError()
        discount = self._store.find_by_code(organization_id, code.strip())
        if discount is None or not discount.is_redeemable(self._clock()):
            raise InvalidDiscountCodeError()
        return discount

    def increment_usage_count(self, discount_id: DiscountId) -> bool:
        """Count one redemption. Never raises; a miss is logged and reported."""
        try:
            applied = self._store.increment_usage(discount_id)
        except Exception:
            logger.warning("Failed to increment usage for discount %s", discount_id, exc_info=True)
            return False
        if not applied:
            logger.warning(
                "Usage increment for discount %s not applied (missing or limit reached)",
                discount_id,
            )
        return applied

    # -- administration -------------------------------------------------------

    def list_discounts(self, actor: Actor, organization_id: OrganizationId) -> list[Discount]:
        actor.ensure_staff_of(organization_id, f"discounts of {organization_id}")
        return self._store.list_discounts(organization_id)

    def get_discount(self, actor: Actor, discount_id: DiscountId) -> Discount:
        discount = self._store.get_discount(discount_id)
        if discount is None:
            raise DiscountNotFoundError(str(discount_id))
        actor.ensure_staff_of(discount.organization_id, f"discount {discount_id}")
        return discount

    def create_discount(
        self, actor: Actor, organization_id: OrganizationId, draft: DiscountDraft
    ) -> Discount:
        """Create a discount code.

        Raises:
            ForbiddenError: The actor is not staff of the organization.
            InvalidDiscountError: Bad value, scope or applicability ids.
            DuplicateDiscountCodeError: The code is taken in the organization.
        """
        actor.ensure_staff_of(organization_id, f"discounts of {organization_id}")
        if draft.scope is None:
            raise InvalidDiscountError("scope is required")
        self._check_draft(draft, draft.scope)
        discount = Discount(
            id=DiscountId.new(),
            organization_id=organization_id,
            code=draft.code.strip().upper(),
            scope=draft.scope,
            discount_type=draft.discount_type,
            value=draft.value,
            usage_limit=draft.usage_limit,
            validity=draft.validity,
            is_active=draft.is_active,
            description=draft.description,
            ticket_type_ids=draft.ticket_type_ids,
            product_ids=draft.product_ids,
            product_category_ids=draft.product_category_ids,
        )
        saved = self._store.save_discount(discount)
        logger.info("Discount %s created for organization %s", saved.code, organization_id)
        return saved

    def update_discount(self, actor: Actor, discount_id: DiscountId, draft: DiscountDraft) -> Discount:
        current = self.get_discount(actor, discount_id)
        if draft.scope is not None and draft.scope is not current.scope:
            raise InvalidDiscountError("Discount scope cannot be changed")
        self._check_draft(draft, current.scope)
        if draft.usage_limit is not None and draft.usage_limit < current.usage_count:
            raise InvalidDiscountError("usageLimit cannot be lower than the current usage count")
        updated = replace(
            current,
            code=draft.code.strip().upper(),
            discount_type=draft.discount_type,
            value=draft.value,
            usage_limit=draft.usage_limit,
            validity=draft.validity,
            is_active=draft.is_active,
            description=draft.description,
            ticket_type_ids=draft.ticket_type_ids,
            product_ids=draft.product_ids,
            product_category_ids=draft.product_category_ids,
        )
        saved = self._store.save_discount(updated)
        logger.info("Discount %s updated", discount_id)
        return saved

    def deactivate_discount(self, actor: Actor, discount_id: DiscountId) -> Discount:
        current = self.get_discount(actor, discount_id)
        if not current.is_active:
            return current
        saved = self._store.save_discount(replace(current, is_active=False))
        logger.info("Discount %s deactivated", discount_id)
        return saved

    @staticmethod
    def _check_draft(draft: DiscountDraft, scope: DiscountScope) -> None:
        if not draft.code or not draft.code.strip():
            raise InvalidDiscountError("code is required")
        try:
            value = Decimal(draft.value)
        except (InvalidOperation, TypeError):
            raise InvalidDiscountError("value must be a number") from None
        if value <= 0:
            raise InvalidDiscountError("value must be greater than zero")
        if draft.discount_type is DiscountType.PERCENTAGE and value > HUNDRED:
            raise InvalidDiscountError("Percentage discount cannot exceed 100")
        if draft.usage_limit is not None and draft.usage_limit < 1:
            raise InvalidDiscountError("usageLimit must be at least 1")
        if scope is DiscountScope.EVENT and (draft.product_ids or draft.product_category_ids):
            raise InvalidDiscountError("EVENT discounts may only list ticket types")
        if scope is DiscountScope.PRODUCT and draft.ticket_type_ids:
            raise InvalidDiscountError("PRODUCT discounts may only list products or categories")


def window(starts_at: datetime | None, ends_at: datetime | None) -> SalesWindow:
    """Build a validity window, mapping an inverted range to a validation error."""
    try:
        return SalesWindow(starts_at=starts_at, ends_at=ends_at)
    except ValueError:
        raise InvalidDiscountError("endDate must not precede startDate") from None
