"""Stock reservation for order placement.

The gatekeeper turns a batch of (product, quantity) pairs into conditional
decrements against the catalog store. Both directions are all-or-nothing:
when one line of a reservation cannot be decremented, every decrement already
applied in the batch is reversed before ``InsufficientStock`` is raised, and
when one line of a release cannot be returned, the lines already returned are
taken back out before the error propagates.
"""

from collections.abc import Iterable

import structlog
from protean.fields import Identifier, Integer

from inventory.catalog import get_catalog_store
from inventory.catalog.port import CatalogStore
from inventory.domain import inventory
from shared.errors import InsufficientStock, InvalidCartLine

logger = structlog.get_logger(__name__)


@inventory.value_object
class StockDecrement:
    """One applied decrement; persisted on the order for later release."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


def _aggregate(items: Iterable[tuple[str, int]]) -> list[StockDecrement]:
    """Merge lines for the same product, keeping first-seen order."""
    totals: dict[str, int] = {}
    for product_id, quantity in items:
        if quantity <= 0:
            raise InvalidCartLine("Quantity must be a positive integer", product_id=product_id, quantity=quantity)
        totals[product_id] = totals.get(product_id, 0) + quantity
    return [StockDecrement(product_id=pid, quantity=qty) for pid, qty in totals.items()]


class InventoryGatekeeper:
    def __init__(self, catalog: CatalogStore | None = None) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> CatalogStore:
        return self._catalog or get_catalog_store()

    def reserve(self, items: Iterable[tuple[str, int]]) -> list[StockDecrement]:
        """Decrement stock for every pair, or for none of them."""
        requested = _aggregate(items)
        applied: list[StockDecrement] = []

        for decrement in requested:
            if self.catalog.conditional_decrement_stock(decrement.product_id, decrement.quantity):
                applied.append(decrement)
                continue

            product = self.catalog.get_product(decrement.product_id)
            available = product.stock if product is not None else 0
            logger.info(
                "Stock reservation failed",
                product_id=decrement.product_id,
                requested=decrement.quantity,
                available=available,
                rolled_back=len(applied),
            )
            self.release(applied)
            raise InsufficientStock(
                f"Not enough stock for product {decrement.product_id}",
                product_id=decrement.product_id,
                requested=decrement.quantity,
                available=available,
            )

        logger.debug("Stock reserved", lines=len(applied))
        return applied

    def release(self, decrements: Iterable[StockDecrement]) -> None:
        """Return reserved units to the catalog, most recent first.

        If an increment fails, the lines already returned are decremented
        again and the error propagates, leaving the reservation intact so
        the caller can retry the whole release.
        """
        returned: list[StockDecrement] = []
        for decrement in reversed(list(decrements)):
            try:
                self.catalog.increment_stock(decrement.product_id, decrement.quantity)
            except Exception:
                logger.exception(
                    "Stock release failed, restoring the reservation",
                    product_id=decrement.product_id,
                    quantity=decrement.quantity,
                    restored=len(returned),
                )
                for done in returned:
                    if not self.catalog.conditional_decrement_stock(done.product_id, done.quantity):
                        logger.error(
                            "Released stock could not be reserved again",
                            product_id=done.product_id,
                            quantity=done.quantity,
                        )
                raise
            returned.append(decrement)
