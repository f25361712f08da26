"""Assembles the services over the Django-backed stores."""

from dataclasses import dataclass

from django.conf import settings

from ticketing.collaborators import IdentityProvider, Notifier
from ticketing.collaborators.identity import DjangoIdentityProvider
from ticketing.collaborators.notifications import SignalNotifier
from ticketing.services import (
    CatalogService,
    DiscountService,
    InventoryService,
    PaymentService,
    PurchaseService,
    TicketService,
)
from ticketing.services.common import Clock, default_clock
from ticketing.stores import (
    CatalogStore,
    DiscountStore,
    InventoryStore,
    PurchaseStore,
    TicketStore,
)
from ticketing.stores.django_store import (
    DjangoCatalogStore,
    DjangoDiscountStore,
    DjangoInventoryStore,
    DjangoPurchaseStore,
    DjangoTicketStore,
)


@dataclass(frozen=True)
class Services:
    identity: IdentityProvider
    catalog: CatalogService
    discounts: DiscountService
    inventory: InventoryService
    tickets: TicketService
    purchases: PurchaseService
    payments: PaymentService


def build_services(
    catalog_store: CatalogStore,
    inventory_store: InventoryStore,
    discount_store: DiscountStore,
    purchase_store: PurchaseStore,
    ticket_store: TicketStore,
    identity: IdentityProvider,
    notifier: Notifier,
    clock: Clock = default_clock,
    ticket_options: dict | None = None,
) -> Services:
    catalog = CatalogService(catalog_store)
    discounts = DiscountService(discount_store, clock=clock)
    inventory = InventoryService(inventory_store)
    tickets = TicketService(
        ticket_store, catalog_store, identity, notifier, clock=clock, **(ticket_options or {})
    )
    return Services(
        identity=identity,
        catalog=catalog,
        discounts=discounts,
        inventory=inventory,
        tickets=tickets,
        purchases=PurchaseService(purchase_store, catalog, discounts, identity, notifier, clock),
        payments=PaymentService(purchase_store, inventory, discounts, tickets, notifier, clock),
    )


def ticket_options_from_settings() -> dict:
    config = getattr(settings, "TICKETING", {})
    options = {}
    if "TICKET_CODE_LENGTH" in config:
        options["code_length"] = config["TICKET_CODE_LENGTH"]
    if "TICKET_CODE_ALPHABET" in config:
        options["code_alphabet"] = config["TICKET_CODE_ALPHABET"]
    if "TICKET_PAYLOAD_SALT" in config:
        options["payload_salt"] = config["TICKET_PAYLOAD_SALT"]
    return options


def django_services() -> Services:
    """Services backed by the ORM, Django auth and the notification signal."""
    return build_services(
        catalog_store=DjangoCatalogStore(),
        inventory_store=DjangoInventoryStore(),
        discount_store=DjangoDiscountStore(),
        purchase_store=DjangoPurchaseStore(),
        ticket_store=DjangoTicketStore(),
        identity=DjangoIdentityProvider(),
        notifier=SignalNotifier(),
        ticket_options=ticket_options_from_settings(),
    )
