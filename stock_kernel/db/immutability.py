"""
Append-only guards for the stock ledger.

Stock is only explainable if every movement stays on record, so ledger
entries and applied-transition records can be inserted but never
updated or deleted through the ORM.  A wrong movement is undone with an
opposite movement, not an edit.

Ingredients may be soft-deleted (``is_deleted``) at any time, but a row
still referenced by a recipe line cannot be physically deleted.

The guards are SQLAlchemy ORM event listeners.  Stock counter updates in
the store are Core ``UPDATE`` statements and never reach them.
"""

from sqlalchemy import event, func, select
from sqlalchemy.orm import Session

from stock_kernel.exceptions import IngredientReferencedError, ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _refuse(entity_type: str, operation: str, reason: str):
    def listener(mapper, connection, target):
        logger.error(
            "append_only_write_refused",
            extra={
                "entity_type": entity_type,
                "entity_id": str(target.id),
                "operation": operation,
            },
        )
        raise ImmutabilityViolationError(
            entity_type=entity_type, entity_id=str(target.id), reason=reason
        )

    listener.__name__ = f"refuse_{entity_type.lower()}_{operation.lower()}"
    return listener


_refuse_entry_update = _refuse(
    "InventoryLedgerEntry", "UPDATE", "ledger entries are append-only"
)
_refuse_entry_delete = _refuse(
    "InventoryLedgerEntry", "DELETE", "ledger entries are append-only"
)
_refuse_transition_update = _refuse(
    "StockTransition", "UPDATE", "applied transitions are permanent"
)
_refuse_transition_delete = _refuse(
    "StockTransition", "DELETE", "applied transitions are permanent"
)


def _guard_recipe_ingredients(session, flush_context, instances):
    # before_flush, not before_delete: the mapper hook runs after the
    # unit of work has already scheduled dependent rows.
    from stock_kernel.models.ingredient import Ingredient
    from stock_kernel.models.recipe import RecipeIngredient

    doomed = [obj for obj in session.deleted if isinstance(obj, Ingredient)]
    for ingredient in doomed:
        with session.no_autoflush:
            uses = session.execute(
                select(func.count(RecipeIngredient.id)).where(
                    RecipeIngredient.ingredient_id == ingredient.id
                )
            ).scalar_one()
        if not uses:
            continue
        logger.error(
            "referenced_ingredient_delete_refused",
            extra={"ingredient_id": ingredient.id, "recipe_count": uses},
        )
        raise IngredientReferencedError(ingredient_id=ingredient.id, recipe_count=uses)


def _listeners():
    from stock_kernel.models.ledger import InventoryLedgerEntry
    from stock_kernel.models.transition import StockTransition

    return (
        (Session, "before_flush", _guard_recipe_ingredients),
        (InventoryLedgerEntry, "before_update", _refuse_entry_update),
        (InventoryLedgerEntry, "before_delete", _refuse_entry_delete),
        (StockTransition, "before_update", _refuse_transition_update),
        (StockTransition, "before_delete", _refuse_transition_delete),
    )


def register_immutability_listeners():
    """Install the guards.  Safe to call more than once."""
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners():
    """Remove the guards.  Tests that need to write forbidden rows only."""
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
