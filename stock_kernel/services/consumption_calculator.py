"""
ConsumptionCalculator -- aggregate ingredient requirements for an order.

Responsibility:
    Loads an order with its line items, recipes and recipe quantities from
    the store, and returns the ConsumptionMap for the whole order.

Architecture position:
    Kernel > Services.  Leaf service: called by StockTransitionService,
    calls only the store and the pure ``aggregate_consumption``.

Invariants enforced:
    - No side effects: read + aggregate only.
    - Recomputed on every call, never cached.
    - Stock sufficiency is NOT checked here (StockLedgerAdjuster warns).

Failure modes:
    - OrderNotFoundError when the order does not exist.
    - StoreTransactionFailedError when the store read fails.
"""

from stock_kernel.domain.consumption import ConsumptionMap, aggregate_consumption
from stock_kernel.exceptions import OrderNotFoundError
from stock_kernel.logging_config import get_logger
from stock_kernel.store.base import StockStore

logger = get_logger("services.consumption_calculator")


class ConsumptionCalculator:
    """Computes the ConsumptionMap of an order from its recipes."""

    def __init__(self, store: StockStore):
        self._store = store

    def compute_consumption(self, order_id: int) -> ConsumptionMap:
        """
        Compute the aggregated ingredient consumption for an order.

        Args:
            order_id: The order to compute consumption for.

        Returns:
            ConsumptionMap; empty when no line item has a recipe.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        snapshot = self._store.load_order_with_recipes(order_id)
        if snapshot is None:
            logger.warning("order_not_found", extra={"order_id": order_id})
            raise OrderNotFoundError(order_id)

        consumption = aggregate_consumption(order_id, snapshot.lines)

        logger.debug(
            "consumption_computed",
            extra={
                "order_id": order_id,
                "line_item_count": len(snapshot.lines),
                "ingredient_count": len(consumption),
                "consumption": {
                    str(k): str(v) for k, v in consumption.as_dict().items()
                },
            },
        )
        return consumption
