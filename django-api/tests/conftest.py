"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from django.contrib.auth.models import Permission
from rest_framework.test import APIClient

from ticketing import models as orm
from ticketing.collaborators.identity import StaticIdentityProvider
from ticketing.collaborators.notifications import RecordingNotifier
from ticketing.domain import (
    Capacity,
    Discount,
    DiscountId,
    DiscountScope,
    DiscountType,
    Event,
    EventId,
    Money,
    OrganizationId,
    Product,
    ProductCategoryId,
    ProductId,
    ProductVariant,
    Role,
    SalesWindow,
    TicketType,
    TicketTypeId,
    UnitStatus,
    VariantId,
)
from ticketing.services import Actor
from ticketing.stores import InMemoryStore
from ticketing.wiring import Services, build_services

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

BUYER_ID = 1
STAFF_ID = 2
ADMIN_ID = 3
OTHER_BUYER_ID = 4
OTHER_STAFF_ID = 5


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@dataclass
class Catalog:
    """Seeds an in-memory store with one organization's catalog."""

    store: InMemoryStore
    organization_id: OrganizationId

    def event(self, currency: str = "USD", **overrides) -> Event:
        fields = dict(
            id=EventId.new(),
            organization_id=self.organization_id,
            name="Summer Festival",
            currency=currency,
        )
        fields.update(overrides)
        return self.store.add_event(Event(**fields))

    def ticket_type(
        self, event: Event, price: str = "1000", quantity: int = 5, **overrides
    ) -> TicketType:
        fields = dict(
            id=TicketTypeId.new(),
            event_id=event.id,
            organization_id=event.organization_id,
            name="General Admission",
            price=Money(Decimal(price)),
            currency=event.currency,
            quantity=Capacity(quantity),
            quantity_sold=Capacity(0),
            sales_window=SalesWindow(NOW - timedelta(days=1), NOW + timedelta(days=30)),
        )
        fields.update(overrides)
        return self.store.add_ticket_type(TicketType(**fields))

    def product(self, price: str = "25", quantity: int = 10, **overrides) -> Product:
        fields = dict(
            id=ProductId.new(),
            organization_id=self.organization_id,
            category_id=ProductCategoryId.new(),
            name="Festival T-Shirt",
            currency="USD",
            price=Money(Decimal(price)) if price is not None else None,
            quantity=Capacity(quantity),
            quantity_sold=Capacity(0),
        )
        fields.update(overrides)
        return self.store.add_product(Product(**fields))

    def variable_product(self, *skus: str, quantity: int = 3) -> Product:
        product_id = ProductId.new()
        variants = tuple(
            ProductVariant(
                id=VariantId.new(),
                product_id=product_id,
                sku=sku,
                price=Money(Decimal("30")),
                quantity=Capacity(quantity),
                quantity_sold=Capacity(0),
            )
            for sku in skus
        )
        return self.product(id=product_id, price=None, quantity=0, variants=variants)

    def discount(
        self,
        code: str = "SAVE200",
        scope: DiscountScope = DiscountScope.EVENT,
        discount_type: DiscountType = DiscountType.FIXED_AMOUNT,
        value: str = "200",
        **overrides,
    ) -> Discount:
        fields = dict(
            id=DiscountId.new(),
            organization_id=self.organization_id,
            code=code,
            scope=scope,
            discount_type=discount_type,
            value=Decimal(value),
            validity=SalesWindow(NOW - timedelta(days=1), NOW + timedelta(days=1)),
        )
        fields.update(overrides)
        return self.store.save_discount(Discount(**fields))

    def hidden(self, ticket_type: TicketType) -> TicketType:
        return self.store.add_ticket_type(replace(ticket_type, status=UnitStatus.HIDDEN))


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def organization_id() -> OrganizationId:
    return OrganizationId.new()


@pytest.fixture
def catalog(store, organization_id) -> Catalog:
    return Catalog(store=store, organization_id=organization_id)


@pytest.fixture
def identity(organization_id) -> StaticIdentityProvider:
    provider = StaticIdentityProvider()
    provider.add_user(BUYER_ID)
    provider.add_user(OTHER_BUYER_ID)
    provider.add_user(STAFF_ID, Role.CUSTOMER, Role.ORG_STAFF, organization_id=organization_id)
    provider.add_user(
        OTHER_STAFF_ID, Role.CUSTOMER, Role.ORG_STAFF, organization_id=OrganizationId.new()
    )
    provider.add_user(ADMIN_ID, Role.CUSTOMER, Role.ADMIN)
    return provider


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def services(store, identity, notifier) -> Services:
    return build_services(
        catalog_store=store,
        inventory_store=store,
        discount_store=store,
        purchase_store=store,
        ticket_store=store,
        identity=identity,
        notifier=notifier,
        clock=lambda: NOW,
    )


@pytest.fixture
def actors(identity) -> dict[str, Actor]:
    return {
        "buyer": Actor.resolve(identity, BUYER_ID),
        "other_buyer": Actor.resolve(identity, OTHER_BUYER_ID),
        "staff": Actor.resolve(identity, STAFF_ID),
        "other_staff": Actor.resolve(identity, OTHER_STAFF_ID),
        "admin": Actor.resolve(identity, ADMIN_ID),
    }


# -- ORM-backed fixtures ------------------------------------------------------


@dataclass
class People:
    buyer: object
    other_buyer: object
    staff: object
    admin: object
    gateway: object


@pytest.fixture
def org_row(db):
    return orm.Organization.objects.create(name="Riverside Arts")


@pytest.fixture
def people(db, django_user_model, org_row) -> People:
    staff = django_user_model.objects.create_user("staff", password="pw")
    orm.Membership.objects.create(user=staff, organization=org_row, role=Role.ORG_STAFF.value)
    gateway = django_user_model.objects.create_user("gateway", password="pw")
    gateway.user_permissions.add(Permission.objects.get(codename="apply_payment_signal"))
    return People(
        buyer=django_user_model.objects.create_user("buyer", password="pw"),
        other_buyer=django_user_model.objects.create_user("other", password="pw"),
        staff=staff,
        admin=django_user_model.objects.create_superuser("admin", "admin@example.com", "pw"),
        gateway=gateway,
    )


@pytest.fixture
def event_row(org_row):
    return orm.Event.objects.create(organization=org_row, name="Jazz Night", currency="USD")


@pytest.fixture
def ticket_type_row(event_row):
    return orm.TicketType.objects.create(
        event=event_row,
        organization=event_row.organization,
        name="General Admission",
        price=Decimal("1000"),
        currency="USD",
        quantity=5,
        is_transferable=True,
    )
