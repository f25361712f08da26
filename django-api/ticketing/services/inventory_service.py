"""Inventory ledger.

`reserve` and `release` are the only operations that move stock. Each is one
conditional update in the store; when it does not apply, the current counters
are re-read to report why.
"""

import logging

from ticketing.domain import InventoryUnit, StockLevel
from ticketing.domain.errors import (
    InsufficientStockError,
    InventoryUnitNotFoundError,
    InvalidQuantityError,
    ReleaseExceedsSoldError,
    UnitNotReservableError,
)
from ticketing.stores.interfaces import InventoryStore

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, store: InventoryStore) -> None:
        self._store = store

    def reserve(self, unit: InventoryUnit, quantity: int) -> None:
        """Move `quantity` units of `unit` from available to sold.

        Raises:
            InvalidQuantityError: quantity < 1.
            InventoryUnitNotFoundError: The unit does not exist.
            UnitNotReservableError: The unit is inactive or deleted.
            InsufficientStockError: Fewer than `quantity` units remain.
        """
        self._check_quantity(quantity)
        if self._store.reserve(unit, quantity):
            logger.debug("Reserved %d of %s", quantity, unit)
            return

        stock = self._store.get_stock(unit)
        if stock is None:
            raise InventoryUnitNotFoundError(str(unit))
        if not stock.status.is_reservable:
            raise UnitNotReservableError(str(unit))
        raise InsufficientStockError(str(unit))

    def release(self, unit: InventoryUnit, quantity: int) -> None:
        """Move `quantity` units of `unit` back from sold to available.

        Raises:
            InventoryUnitNotFoundError: The unit does not exist.
            ReleaseExceedsSoldError: Fewer than `quantity` units were sold.
        """
        self._check_quantity(quantity)
        if self._store.release(unit, quantity):
            logger.debug("Released %d of %s", quantity, unit)
            return
        if self._store.get_stock(unit) is None:
            raise InventoryUnitNotFoundError(str(unit))
        raise ReleaseExceedsSoldError(str(unit))

    def stock(self, unit: InventoryUnit) -> StockLevel:
        stock = self._store.get_stock(unit)
        if stock is None:
            raise InventoryUnitNotFoundError(str(unit))
        return stock

    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if quantity < 1:
            raise InvalidQuantityError("Quantity must be at least 1")
