"""
Module: stock_kernel.models.ingredient
Responsibility: ORM persistence for ingredients and their stock counters.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - current_stock is mutated ONLY by the stock ledger adjuster, through a
      storage-side increment, never by assigning a value computed in memory.
    - current_stock == initial_stock + sum(InventoryLedgerEntry.change) for
      the ingredient (verified by LedgerAuditor).
    - An ingredient referenced by a recipe is never physically deleted
      (db/immutability.py); administrative removal sets is_deleted.

Failure modes:
    - IngredientReferencedError when deleting an ingredient used by a recipe.
    - IntegrityError on duplicate name.
"""

from decimal import Decimal

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base


class Ingredient(Base):
    """
    A stocked ingredient.

    Contract:
        Stock is a signed decimal.  Negative stock is allowed and signals an
        unreconciled shortfall (consumption ran ahead of recorded stock).

    Non-goals:
        - This model does NOT reconcile against physical counts.
        - initial_stock is the opening balance; restocking outside the
          order flow must go through the ledger to keep the invariant.
    """

    __tablename__ = "ingredients"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    # Free-form unit of measure ("g", "ml", "pcs")
    unit: Mapped[str] = mapped_column(String(20), nullable=False)

    current_stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # Opening balance the ledger is measured against
    initial_stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    cost_per_unit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    waste_percentage: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    recipe_ingredients = relationship("RecipeIngredient", back_populates="ingredient")

    def __repr__(self) -> str:
        return f"<Ingredient {self.id} {self.name!r} stock={self.current_stock}{self.unit}>"
