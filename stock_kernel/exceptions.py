"""
Errors raised by the stock kernel.

The order-update caller decides between retrying a transition and
flagging the order for manual reconciliation by catching a type, so each
failure has its own class.  Every class carries a stable ``code`` string
for API responses and log payloads, and the ids involved
(``order_id``, ``ingredient_id``, ...) as attributes::

    try:
        transitions.on_order_status_changed(order_id, old, new, actor_id)
    except StoreTransactionFailedError as e:
        flag_for_reconciliation(order_id, e.ingredient_id)
    except StockKernelError as e:
        log.error("stock adjustment failed", extra={"code": e.code})

Families: orders, ingredients, the store, ledger audits, append-only
records and configuration.  Running short of an ingredient is not an
error: consumption still happens, stock goes negative and the shortfall
is reported on the adjustment result as ``InsufficientStock``.
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Order-related exceptions


class OrderError(StockKernelError):
    """Base exception for order-related errors."""

    code: str = "ORDER_ERROR"


class OrderNotFoundError(OrderError):
    """Order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


# Ingredient-related exceptions


class IngredientError(StockKernelError):
    """Base exception for ingredient-related errors."""

    code: str = "INGREDIENT_ERROR"


class IngredientNotFoundError(IngredientError):
    """Ingredient with given ID was not found."""

    code: str = "INGREDIENT_NOT_FOUND"

    def __init__(self, ingredient_id: int):
        self.ingredient_id = ingredient_id
        super().__init__(f"Ingredient {ingredient_id} not found")


class IngredientReferencedError(IngredientError):
    """Ingredient is used by at least one recipe and cannot be deleted."""

    code: str = "INGREDIENT_REFERENCED"

    def __init__(self, ingredient_id: int, recipe_count: int):
        self.ingredient_id = ingredient_id
        self.recipe_count = recipe_count
        super().__init__(
            f"Ingredient {ingredient_id} is used by {recipe_count} recipe(s) "
            "and cannot be deleted"
        )


# Store-related exceptions


class StoreError(StockKernelError):
    """Base exception for persistence store errors."""

    code: str = "STORE_ERROR"


class StoreTransactionFailedError(StoreError):
    """
    A store transaction failed to execute or commit.

    Wraps the underlying driver/ORM error (available as ``__cause__``).
    The transaction has been rolled back; nothing for ``ingredient_id``
    was written.
    """

    code: str = "STORE_TRANSACTION_FAILED"

    def __init__(self, ingredient_id: int | None, reason: str):
        self.ingredient_id = ingredient_id
        self.reason = reason
        target = f"ingredient {ingredient_id}" if ingredient_id is not None else "batch"
        super().__init__(f"Store transaction failed for {target}: {reason}")


class TransitionKeyConflictError(StoreError):
    """
    The idempotency key was already recorded by another delivery.

    Raised inside the transaction that tried to record it, so that
    transaction's stock movements are rolled back with it.
    """

    code: str = "TRANSITION_KEY_CONFLICT"

    def __init__(self, transition_key: str, order_id: int):
        self.transition_key = transition_key
        self.order_id = order_id
        super().__init__(
            f"Transition key {transition_key!r} for order {order_id} is already recorded"
        )


# Audit-related exceptions


class AuditError(StockKernelError):
    """Base exception for audit errors."""

    code: str = "AUDIT_ERROR"


class LedgerInvariantViolationError(AuditError):
    """
    Stock counters disagree with the ledger.

    For at least one ingredient, current_stock != initial_stock + sum(changes).
    """

    code: str = "LEDGER_INVARIANT_VIOLATION"

    def __init__(self, ingredient_ids: list[int]):
        self.ingredient_ids = ingredient_ids
        super().__init__(
            f"Ledger invariant violated for ingredient(s): "
            f"{', '.join(str(i) for i in ingredient_ids)}"
        )


# Immutability exceptions


class ImmutabilityError(StockKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted modification of an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Configuration exceptions


class ConfigError(StockKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidConfigError(ConfigError):
    """Engine configuration failed validation."""

    code: str = "INVALID_CONFIG"

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            f"Invalid stock engine configuration: {'; '.join(errors)}"
        )
