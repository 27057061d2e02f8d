"""
Pure domain core of the stock kernel: status classification, consumption
aggregation, value snapshots and the clock.  No I/O, no ORM sessions.
"""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.consumption import (
    ConsumptionLine,
    ConsumptionMap,
    aggregate_consumption,
)
from stock_kernel.domain.transition_policy import (
    DEFAULT_CONSUMING_STATUSES,
    DEFAULT_RETURNING_STATUSES,
    TransitionDecision,
    TransitionPolicy,
    TransitionRule,
    requires_adjustment,
)
from stock_kernel.domain.values import (
    IngredientStock,
    OrderLine,
    OrderSnapshot,
    RecipeLine,
    StockAction,
    StockDirection,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ConsumptionLine",
    "ConsumptionMap",
    "aggregate_consumption",
    "DEFAULT_CONSUMING_STATUSES",
    "DEFAULT_RETURNING_STATUSES",
    "TransitionDecision",
    "TransitionPolicy",
    "TransitionRule",
    "requires_adjustment",
    "IngredientStock",
    "OrderLine",
    "OrderSnapshot",
    "RecipeLine",
    "StockAction",
    "StockDirection",
]
