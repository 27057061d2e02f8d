"""
Module: stock_kernel.models.recipe
Responsibility: ORM persistence for products, recipes and their per-unit
    ingredient quantities (the bill of ingredients for one unit sold).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One RecipeIngredient row per (recipe, ingredient) pair.
    - Recipes are read, never written, by the stock engine.  Edits made by
      other collaborators only affect consumption computed afterwards.
"""

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base, IdType


class Product(Base):
    """A sellable product.  Recipes attach to products per variant."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    recipes = relationship("Recipe", back_populates="product", cascade="all, delete-orphan")


class Recipe(Base):
    """A product variant's recipe (e.g. "Latte", variant "large")."""

    __tablename__ = "recipes"

    product_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant: Mapped[str] = mapped_column(String(100), nullable=False, default="default")

    product = relationship("Product", back_populates="recipes")
    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
    )


class RecipeIngredient(Base):
    """Quantity of one ingredient consumed per unit of the recipe sold."""

    __tablename__ = "recipe_ingredients"

    __table_args__ = (
        UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredient"),
    )

    recipe_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("recipes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ingredient_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("ingredients.id"),
        nullable=False,
        index=True,
    )
    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    recipe = relationship("Recipe", back_populates="ingredients")
    ingredient = relationship("Ingredient", back_populates="recipe_ingredients")
