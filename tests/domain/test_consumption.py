"""Tests for consumption aggregation over order line items."""

from decimal import Decimal

import pytest

from stock_kernel.domain.consumption import (
    ConsumptionLine,
    ConsumptionMap,
    aggregate_consumption,
)
from stock_kernel.domain.values import OrderLine, RecipeLine, StockDirection

LATTE = (
    RecipeLine(ingredient_id=1, quantity_per_unit=Decimal("18")),
    RecipeLine(ingredient_id=2, quantity_per_unit=Decimal("60")),
)
ESPRESSO = (
    RecipeLine(ingredient_id=1, quantity_per_unit=Decimal("9")),
)


class TestAggregateConsumption:

    def test_quantity_multiplies_recipe(self):
        consumption = aggregate_consumption(
            7, [OrderLine(product_id=1, quantity=2, recipe_id=10, recipe=LATTE)]
        )
        assert consumption.as_dict() == {1: Decimal("36"), 2: Decimal("120")}

    def test_shared_ingredient_is_summed_once(self):
        consumption = aggregate_consumption(
            7,
            [
                OrderLine(product_id=1, quantity=1, recipe_id=10, recipe=LATTE),
                OrderLine(product_id=2, quantity=3, recipe_id=11, recipe=ESPRESSO),
            ],
        )
        assert len(consumption) == 2
        assert consumption.quantity_for(1) == Decimal("45")
        assert consumption.quantity_for(2) == Decimal("60")

    def test_first_seen_order_is_kept(self):
        consumption = aggregate_consumption(
            7,
            [
                OrderLine(product_id=2, quantity=1, recipe_id=11, recipe=ESPRESSO),
                OrderLine(product_id=1, quantity=1, recipe_id=10, recipe=LATTE),
            ],
        )
        assert [line.ingredient_id for line in consumption] == [1, 2]

    def test_line_without_recipe_contributes_nothing(self):
        consumption = aggregate_consumption(
            7,
            [
                OrderLine(product_id=3, quantity=5),
                OrderLine(product_id=1, quantity=1, recipe_id=10, recipe=LATTE),
            ],
        )
        assert consumption.as_dict() == {1: Decimal("18"), 2: Decimal("60")}

    def test_no_recipes_gives_empty_map(self):
        consumption = aggregate_consumption(7, [OrderLine(product_id=3, quantity=1)])
        assert consumption.is_empty
        assert consumption.order_id == 7

    def test_fractional_quantities_stay_exact(self):
        recipe = (RecipeLine(ingredient_id=5, quantity_per_unit=Decimal("0.1")),)
        consumption = aggregate_consumption(
            1, [OrderLine(product_id=1, quantity=3, recipe_id=1, recipe=recipe)]
        )
        assert consumption.quantity_for(5) == Decimal("0.3")


class TestConsumptionMap:

    def test_duplicate_ingredient_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ConsumptionMap(
                order_id=1,
                lines=(
                    ConsumptionLine(ingredient_id=1, total_quantity=Decimal("1")),
                    ConsumptionLine(ingredient_id=1, total_quantity=Decimal("2")),
                ),
            )

    def test_unknown_ingredient_quantity_is_zero(self):
        assert ConsumptionMap(order_id=1).quantity_for(99) == Decimal("0")


class TestStockDirection:

    def test_consume_is_negative(self):
        assert StockDirection.CONSUME.signed(Decimal("36")) == Decimal("-36")

    def test_return_is_positive(self):
        assert StockDirection.RETURN.signed(Decimal("36")) == Decimal("36")
