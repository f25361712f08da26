"""Tests for the inventory ledger over the in-memory store."""

import threading

import pytest

from ticketing.domain import InventoryUnit, UnitKind, UnitStatus
from ticketing.domain.errors import (
    InsufficientStockError,
    InventoryUnitNotFoundError,
    ReleaseExceedsSoldError,
    UnitNotReservableError,
)
from ticketing.domain.value_objects import TicketTypeId


def counters(services, unit):
    stock = services.inventory.stock(unit)
    return stock.quantity.value, stock.quantity_sold.value


class TestReserve:
    def test_reserve_moves_stock_to_sold(self, services, catalog):
        """reserve decrements quantity and increments quantity_sold."""
        ticket_type = catalog.ticket_type(catalog.event(), quantity=5)

        services.inventory.reserve(ticket_type.unit, 2)

        assert counters(services, ticket_type.unit) == (3, 2)

    def test_reserve_then_release_restores_counters(self, services, catalog):
        ticket_type = catalog.ticket_type(catalog.event(), quantity=5)

        services.inventory.reserve(ticket_type.unit, 3)
        services.inventory.release(ticket_type.unit, 3)

        assert counters(services, ticket_type.unit) == (5, 0)

    def test_insufficient_stock(self, services, catalog):
        ticket_type = catalog.ticket_type(catalog.event(), quantity=1)

        with pytest.raises(InsufficientStockError):
            services.inventory.reserve(ticket_type.unit, 2)
        assert counters(services, ticket_type.unit) == (1, 0)

    def test_hidden_unit_is_reservable(self, services, catalog):
        ticket_type = catalog.hidden(catalog.ticket_type(catalog.event()))

        services.inventory.reserve(ticket_type.unit, 1)

        assert counters(services, ticket_type.unit) == (4, 1)

    @pytest.mark.parametrize("status", [UnitStatus.INACTIVE, UnitStatus.DELETED])
    def test_inactive_or_deleted_unit_is_not_reservable(self, services, catalog, status):
        ticket_type = catalog.ticket_type(catalog.event(), status=status)

        with pytest.raises(UnitNotReservableError):
            services.inventory.reserve(ticket_type.unit, 1)

    def test_unknown_unit(self, services):
        unit = InventoryUnit(UnitKind.TICKET_TYPE, TicketTypeId.new())
        with pytest.raises(InventoryUnitNotFoundError):
            services.inventory.reserve(unit, 1)

    def test_variant_stock_is_tracked_per_variant(self, services, catalog):
        product = catalog.variable_product("S", "M", quantity=3)
        small, medium = product.variants

        services.inventory.reserve(small.unit, 2)

        assert counters(services, small.unit) == (1, 2)
        assert counters(services, medium.unit) == (3, 0)


class TestRelease:
    def test_release_more_than_sold(self, services, catalog):
        ticket_type = catalog.ticket_type(catalog.event(), quantity=5)
        services.inventory.reserve(ticket_type.unit, 1)

        with pytest.raises(ReleaseExceedsSoldError):
            services.inventory.release(ticket_type.unit, 2)
        assert counters(services, ticket_type.unit) == (4, 1)


class TestConcurrentReservation:
    def test_last_unit_is_sold_once(self, services, catalog):
        """Many threads racing for one unit: exactly one reservation applies."""
        ticket_type = catalog.ticket_type(catalog.event(), quantity=1)
        barrier = threading.Barrier(8)
        outcomes: list[str] = []
        lock = threading.Lock()

        def attempt():
            barrier.wait()
            try:
                services.inventory.reserve(ticket_type.unit, 1)
                result = "ok"
            except InsufficientStockError:
                result = "conflict"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 7
        assert counters(services, ticket_type.unit) == (0, 1)
