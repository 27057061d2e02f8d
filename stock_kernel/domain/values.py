"""
Values -- enums and immutable snapshots shared by the stock engine.

Responsibility:
    Defines the stock action vocabulary (CONSUME / RETURN / NO_OP) and the
    read-only snapshots the store hands to the engine: an order with its
    line items and recipes, and an ingredient's stock record.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Snapshots are built
    by the store from ORM rows (``from_model`` boundary converters) so the
    engine never holds live ORM objects across transactions.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stock_kernel.models.ingredient import Ingredient as IngredientModel
    from stock_kernel.models.order import Order as OrderModel


class StockDirection(str, Enum):
    """Direction of a stock adjustment."""

    CONSUME = "CONSUME"
    RETURN = "RETURN"

    def signed(self, quantity: Decimal) -> Decimal:
        """Signed stock delta: negative when consuming, positive when returning."""
        return -quantity if self is StockDirection.CONSUME else quantity


class StockAction(str, Enum):
    """Outcome of classifying an order status transition."""

    CONSUME = "CONSUME"
    RETURN = "RETURN"
    NO_OP = "NO_OP"

    @property
    def direction(self) -> StockDirection | None:
        if self is StockAction.NO_OP:
            return None
        return StockDirection(self.value)


@dataclass(frozen=True, slots=True)
class RecipeLine:
    """Per-unit quantity of one ingredient in a recipe."""

    ingredient_id: int
    quantity_per_unit: Decimal


@dataclass(frozen=True, slots=True)
class OrderLine:
    """One order line item; ``recipe`` is empty when no recipe is linked."""

    product_id: int
    quantity: int
    recipe_id: int | None = None
    recipe: tuple[RecipeLine, ...] = ()


@dataclass(frozen=True, slots=True)
class OrderSnapshot:
    """An order and its recipe-bearing line items, loaded in full."""

    order_id: int
    status: str
    lines: tuple[OrderLine, ...]

    @classmethod
    def from_model(cls, order: OrderModel) -> OrderSnapshot:
        lines = []
        for item in order.line_items:
            recipe_lines: tuple[RecipeLine, ...] = ()
            if item.recipe is not None:
                recipe_lines = tuple(
                    RecipeLine(
                        ingredient_id=ri.ingredient_id,
                        quantity_per_unit=Decimal(ri.quantity),
                    )
                    for ri in item.recipe.ingredients
                )
            lines.append(
                OrderLine(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    recipe_id=item.recipe_id,
                    recipe=recipe_lines,
                )
            )
        return cls(order_id=order.id, status=order.status, lines=tuple(lines))


@dataclass(frozen=True, slots=True)
class IngredientStock:
    """Consistent read of one ingredient's stock record inside a transaction."""

    ingredient_id: int
    name: str
    unit: str
    current_stock: Decimal
    is_deleted: bool = False

    @classmethod
    def from_model(cls, ingredient: IngredientModel) -> IngredientStock:
        return cls(
            ingredient_id=ingredient.id,
            name=ingredient.name,
            unit=ingredient.unit,
            current_stock=Decimal(ingredient.current_stock),
            is_deleted=ingredient.is_deleted,
        )
