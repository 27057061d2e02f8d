"""Domain models for the stock kernel."""

from stock_kernel.models.ingredient import Ingredient
from stock_kernel.models.ledger import InventoryLedgerEntry
from stock_kernel.models.order import Order, OrderLineItem
from stock_kernel.models.recipe import Product, Recipe, RecipeIngredient
from stock_kernel.models.transition import StockTransition

__all__ = [
    "Ingredient",
    "InventoryLedgerEntry",
    "Order",
    "OrderLineItem",
    "Product",
    "Recipe",
    "RecipeIngredient",
    "StockTransition",
]
