"""
Consumption -- aggregate ingredient requirements for one order.

Responsibility:
    Turns an order's line items and their recipes into a single
    ConsumptionMap: one line per distinct ingredient, holding the total
    quantity the whole order requires.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The
    ConsumptionCalculator service loads the order and calls
    ``aggregate_consumption``.

Invariants enforced:
    - Keys are unique: two line items sharing an ingredient produce ONE
      entry whose quantity is the sum of both contributions.
    - Line items without a recipe contribute nothing.
    - The map is built per call and discarded; it is never cached, because
      recipes may change between the consumption and a later return.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from decimal import Decimal

from stock_kernel.domain.values import OrderLine


@dataclass(frozen=True, slots=True)
class ConsumptionLine:
    """Total quantity of one ingredient required by an order."""

    ingredient_id: int
    total_quantity: Decimal


@dataclass(frozen=True, slots=True)
class ConsumptionMap:
    """
    Ephemeral mapping from ingredient id to aggregated required quantity.

    Guarantees:
        - ingredient ids are unique across ``lines``.
        - ``lines`` keep first-seen order, which fixes the order in which
          the adjuster processes ingredients (and so ledger entry order).
        - An empty map means "no adjustment needed".
    """

    order_id: int
    lines: tuple[ConsumptionLine, ...] = ()

    def __post_init__(self) -> None:
        ids = [line.ingredient_id for line in self.lines]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate ingredient ids in consumption for order {self.order_id}")

    def __iter__(self) -> Iterator[ConsumptionLine]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def quantity_for(self, ingredient_id: int) -> Decimal:
        """Total quantity for an ingredient, zero when the order doesn't use it."""
        for line in self.lines:
            if line.ingredient_id == ingredient_id:
                return line.total_quantity
        return Decimal("0")

    def as_dict(self) -> dict[int, Decimal]:
        return {line.ingredient_id: line.total_quantity for line in self.lines}


def aggregate_consumption(order_id: int, lines: Iterable[OrderLine]) -> ConsumptionMap:
    """
    Aggregate per-unit recipe quantities over an order's line items.

    For every line item with a recipe and every ingredient in that recipe,
    ``quantity_per_unit * line.quantity`` is added to the running total for
    the ingredient.

    Args:
        order_id: The order the lines belong to.
        lines: The order's line items with their recipes.

    Returns:
        ConsumptionMap, empty when no line item carries a recipe.
    """
    totals: dict[int, Decimal] = {}
    for line in lines:
        for recipe_line in line.recipe:
            required = recipe_line.quantity_per_unit * line.quantity
            totals[recipe_line.ingredient_id] = (
                totals.get(recipe_line.ingredient_id, Decimal("0")) + required
            )

    return ConsumptionMap(
        order_id=order_id,
        lines=tuple(
            ConsumptionLine(ingredient_id=ingredient_id, total_quantity=total)
            for ingredient_id, total in totals.items()
        ),
    )
