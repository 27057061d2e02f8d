"""
StockSelector -- read-only stock levels.

``negative_stock`` lists ingredients whose counter went below zero: the
shortfalls that consumption was allowed to create and that still need a
stock count or a delivery to reconcile.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select

from stock_kernel.exceptions import IngredientNotFoundError
from stock_kernel.models.ingredient import Ingredient
from stock_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StockLevel:
    ingredient_id: int
    name: str
    unit: str
    current_stock: Decimal
    is_deleted: bool

    @property
    def is_negative(self) -> bool:
        return self.current_stock < 0


class StockSelector(BaseSelector[Ingredient]):

    @staticmethod
    def _to_level(ingredient: Ingredient) -> StockLevel:
        return StockLevel(
            ingredient_id=ingredient.id,
            name=ingredient.name,
            unit=ingredient.unit,
            current_stock=Decimal(ingredient.current_stock),
            is_deleted=ingredient.is_deleted,
        )

    def stock_level(self, ingredient_id: int) -> StockLevel:
        """
        Raises:
            IngredientNotFoundError: If the ingredient does not exist.
        """
        ingredient = self.session.get(Ingredient, ingredient_id, populate_existing=True)
        if ingredient is None:
            raise IngredientNotFoundError(ingredient_id)
        return self._to_level(ingredient)

    def negative_stock(self, include_deleted: bool = False) -> list[StockLevel]:
        query = select(Ingredient).where(Ingredient.current_stock < 0)
        if not include_deleted:
            query = query.where(Ingredient.is_deleted.is_(False))
        query = query.order_by(Ingredient.name)
        rows = self.session.execute(
            query.execution_options(populate_existing=True)
        ).scalars()
        return [self._to_level(i) for i in rows]
