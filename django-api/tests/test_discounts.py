"""Tests for DiscountService: code validation, usage counting and administration."""

from datetime import timedelta
from decimal import Decimal

import pytest
from conftest import NOW

from ticketing.domain import (
    DiscountScope,
    DiscountType,
    OrganizationId,
    ProductId,
    SalesWindow,
    TicketTypeId,
)
from ticketing.domain.errors import (
    DuplicateDiscountCodeError,
    ForbiddenError,
    InvalidDiscountCodeError,
    InvalidDiscountError,
)
from ticketing.services import DiscountDraft


class TestValidateCode:
    def test_lookup_is_case_insensitive(self, services, catalog):
        discount = catalog.discount(code="SUMMER")

        found = services.discounts.validate_code("summer", catalog.organization_id)

        assert found.id == discount.id

    def test_exhausted_code_is_rejected_inside_its_window(self, services, catalog):
        """usageLimit=1, usageCount=1 fails even though the dates are valid."""
        catalog.discount(code="ONCE", usage_limit=1, usage_count=1)

        with pytest.raises(InvalidDiscountCodeError):
            services.discounts.validate_code("ONCE", catalog.organization_id)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"is_active": False},
            {"validity": SalesWindow(NOW - timedelta(days=10), NOW - timedelta(days=1))},
            {"validity": SalesWindow(NOW + timedelta(days=1), None)},
        ],
        ids=["inactive", "expired", "not-started"],
    )
    def test_unredeemable_codes_share_one_error(self, services, catalog, overrides):
        catalog.discount(code="NOPE", **overrides)

        with pytest.raises(InvalidDiscountCodeError) as excinfo:
            services.discounts.validate_code("NOPE", catalog.organization_id)

        assert excinfo.value.message == InvalidDiscountCodeError().message

    def test_code_from_another_organization_is_unknown(self, services, catalog):
        catalog.discount(code="MINE")

        with pytest.raises(InvalidDiscountCodeError):
            services.discounts.validate_code("MINE", OrganizationId.new())


class TestIncrementUsage:
    def test_increments_once(self, services, catalog, store):
        discount = catalog.discount(usage_limit=2)

        assert services.discounts.increment_usage_count(discount.id)

        assert store.get_discount(discount.id).usage_count == 1

    def test_limit_reached_is_reported_not_raised(self, services, catalog, store, caplog):
        discount = catalog.discount(usage_limit=1, usage_count=1)

        assert services.discounts.increment_usage_count(discount.id) is False
        assert store.get_discount(discount.id).usage_count == 1
        assert "not applied" in caplog.text


def draft(**overrides) -> DiscountDraft:
    fields = dict(
        code="vip10",
        scope=DiscountScope.EVENT,
        discount_type=DiscountType.PERCENTAGE,
        value=Decimal("10"),
    )
    fields.update(overrides)
    return DiscountDraft(**fields)


class TestDiscountAdministration:
    def test_create_stores_code_upper_case(self, services, actors, catalog):
        discount = services.discounts.create_discount(
            actors["staff"], catalog.organization_id, draft()
        )

        assert discount.code == "VIP10"
        assert discount.usage_count == 0

    def test_duplicate_code_in_organization_conflicts(self, services, actors, catalog):
        catalog.discount(code="VIP10")

        with pytest.raises(DuplicateDiscountCodeError):
            services.discounts.create_discount(actors["staff"], catalog.organization_id, draft())

    def test_same_code_in_another_organization_is_fine(self, services, actors, catalog):
        catalog.discount(code="VIP10")
        other_org = actors["other_staff"].organization_id
        services.discounts.create_discount(actors["other_staff"], other_org, draft())

    def test_staff_of_another_organization_is_forbidden(self, services, actors, catalog):
        with pytest.raises(ForbiddenError):
            services.discounts.create_discount(
                actors["other_staff"], catalog.organization_id, draft()
            )

    def test_customers_cannot_list_discounts(self, services, actors, catalog):
        with pytest.raises(ForbiddenError):
            services.discounts.list_discounts(actors["buyer"], catalog.organization_id)

    @pytest.mark.parametrize("value", ["0", "100.01"])
    def test_percentage_must_be_within_range(self, services, actors, catalog, value):
        with pytest.raises(InvalidDiscountError):
            services.discounts.create_discount(
                actors["staff"], catalog.organization_id, draft(value=Decimal(value))
            )

    def test_applicability_ids_must_match_scope(self, services, actors, catalog):
        with pytest.raises(InvalidDiscountError):
            services.discounts.create_discount(
                actors["staff"],
                catalog.organization_id,
                draft(product_ids=frozenset({ProductId.new()})),
            )

    def test_scope_is_immutable(self, services, actors, catalog):
        discount = catalog.discount()

        with pytest.raises(InvalidDiscountError):
            services.discounts.update_discount(
                actors["staff"], discount.id, draft(scope=DiscountScope.PRODUCT)
            )

    def test_update_keeps_scope_and_usage(self, services, actors, catalog):
        discount = catalog.discount(usage_count=3)
        listed = TicketTypeId.new()

        updated = services.discounts.update_discount(
            actors["staff"],
            discount.id,
            draft(scope=None, ticket_type_ids=frozenset({listed})),
        )

        assert updated.scope is DiscountScope.EVENT
        assert updated.usage_count == 3
        assert updated.ticket_type_ids == frozenset({listed})

    def test_deactivate(self, services, actors, catalog):
        discount = catalog.discount()

        services.discounts.deactivate_discount(actors["admin"], discount.id)

        with pytest.raises(InvalidDiscountCodeError):
            services.discounts.validate_code(discount.code, catalog.organization_id)
