"""
StockTransitionService -- the stock engine's entry point for status changes.

Responsibility:
    Reacts to one order status transition: classifies it with the
    TransitionPolicy, and when an adjustment is needed computes the order's
    consumption and applies it through the StockLedgerAdjuster.

Architecture position:
    Kernel > Services -- orchestration.  Invoked by the order-management
    collaborator AFTER the new order status has been persisted.

Invariants enforced:
    - Consuming-to-consuming transitions are NO_OP; stock is debited once,
      when fulfillment begins, and credited once on cancellation.
    - NO_OP transitions never load the order.
    - An order with no recipe-bearing line items is a silent no-op.
    - Optional idempotency: when the caller supplies ``transition_key`` the
      key is looked up first, stamped on every ledger entry it writes, and
      recorded in the same transaction as the last stock movement.  A
      retried delivery, including one whose first attempt failed part way
      or committed without the caller hearing back, moves each ingredient
      at most once and is reported as ALREADY_APPLIED when nothing was left
      to do.  Without a key a repeated call adjusts stock again.

Failure modes:
    - OrderNotFoundError, IngredientNotFoundError,
      StoreTransactionFailedError, TransitionKeyConflictError propagate to the caller, who has already
      committed the status change.  The inconsistency window is logged
      (``stock_transition_failed``) for operator follow-up.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.consumption import ConsumptionMap
from stock_kernel.domain.transition_policy import (
    DEFAULT_POLICY,
    TransitionDecision,
    TransitionPolicy,
)
from stock_kernel.domain.values import StockAction
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services.consumption_calculator import ConsumptionCalculator
from stock_kernel.services.stock_ledger_adjuster import (
    AdjustmentResult,
    StockLedgerAdjuster,
)
from stock_kernel.store.base import RecordedLedgerEntry, StockStore, TransitionRecord

logger = get_logger("services.transition")


class TransitionStatus(str, Enum):
    """What ``on_order_status_changed`` did."""

    NO_OP = "no_op"
    NOTHING_TO_ADJUST = "nothing_to_adjust"
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"


@dataclass(frozen=True, slots=True)
class TransitionOutcome:
    order_id: int
    old_status: str
    new_status: str
    action: StockAction
    status: TransitionStatus
    consumption: ConsumptionMap | None = None
    adjustment: AdjustmentResult | None = None
    transition_key: str | None = None

    @property
    def entries(self) -> tuple[RecordedLedgerEntry, ...]:
        if self.adjustment is None:
            return ()
        return self.adjustment.entries

    @property
    def applied(self) -> bool:
        return self.status is TransitionStatus.APPLIED


class StockTransitionService:
    """
    Transition-driven stock consumption and return.

    Contract:
        ``on_order_status_changed`` returns a TransitionOutcome on success
        and raises on failure.  Partial adjustments are possible in the
        default per-ingredient transaction mode (see StockLedgerAdjuster).

    Non-goals:
        - Does NOT persist the order status itself.
        - Does NOT compensate partially applied adjustments.
    """

    def __init__(
        self,
        store: StockStore,
        policy: TransitionPolicy | None = None,
        clock: Clock | None = None,
        calculator: ConsumptionCalculator | None = None,
        adjuster: StockLedgerAdjuster | None = None,
        atomic_batch: bool = False,
    ):
        self._store = store
        self._policy = policy or DEFAULT_POLICY
        self._clock = clock or SystemClock()
        self._calculator = calculator or ConsumptionCalculator(store)
        self._adjuster = adjuster or StockLedgerAdjuster(
            store, clock=self._clock, atomic_batch=atomic_batch
        )

    @property
    def policy(self) -> TransitionPolicy:
        return self._policy

    def requires_adjustment(self, old_status: str, new_status: str) -> bool:
        """Whether the transition would touch stock; no order is loaded."""
        return self._policy.requires_adjustment(old_status, new_status)

    def on_order_status_changed(
        self,
        order_id: int,
        old_status: str,
        new_status: str,
        actor_id: int,
        transition_key: str | None = None,
    ) -> TransitionOutcome:
        """
        Apply the stock side effects of an order status transition.

        Args:
            order_id: Order whose status changed.
            old_status: Status before the change.
            new_status: Status after the change (already persisted).
            actor_id: User who made the change; recorded on every entry.
            transition_key: Optional idempotency key for this delivery.

        Returns:
            TransitionOutcome describing what was done.

        Raises:
            OrderNotFoundError: The order does not exist.
            IngredientNotFoundError: A recipe ingredient does not exist.
            StoreTransactionFailedError: A store transaction failed.
            TransitionKeyConflictError: The key was recorded by another
                delivery; the transaction that tried to record it rolled back.
        """
        with LogContext.bind(
            order_id=order_id,
            actor_id=actor_id,
            transition_key=transition_key,
        ):
            decision = self._policy.decide(old_status, new_status)
            logger.info(
                "stock_transition_started",
                extra={
                    "old_status": old_status,
                    "new_status": new_status,
                    "action": decision.action.value,
                    "rule": decision.rule.value,
                },
            )

            if not decision.requires_adjustment:
                logger.debug("stock_transition_noop")
                return self._outcome(order_id, decision, TransitionStatus.NO_OP, transition_key)

            if transition_key is not None:
                existing = self._store.find_transition(transition_key)
                if existing is not None:
                    logger.info(
                        "stock_transition_already_applied",
                        extra={
                            "applied_at": existing.applied_at.isoformat(),
                            "recorded_action": existing.action,
                        },
                    )
                    return self._outcome(
                        order_id, decision, TransitionStatus.ALREADY_APPLIED, transition_key
                    )

            try:
                consumption = self._calculator.compute_consumption(order_id)
                if consumption.is_empty:
                    logger.info("stock_transition_nothing_to_adjust")
                    return self._outcome(
                        order_id,
                        decision,
                        TransitionStatus.NOTHING_TO_ADJUST,
                        transition_key,
                        consumption=consumption,
                    )

                adjustment = self._adjuster.apply_adjustment(
                    consumption,
                    decision.action.direction,
                    order_id=order_id,
                    actor_id=actor_id,
                    reason=decision.reason(order_id),
                    transition=self._transition_record(
                        transition_key, order_id, decision, actor_id
                    ),
                )
            except Exception:
                logger.error(
                    "stock_transition_failed",
                    extra={
                        "old_status": old_status,
                        "new_status": new_status,
                        "action": decision.action.value,
                    },
                    exc_info=True,
                )
                raise

            if not adjustment.entries and adjustment.already_applied:
                logger.info(
                    "stock_transition_already_applied",
                    extra={"skipped_ingredient_ids": list(adjustment.already_applied)},
                )
                return self._outcome(
                    order_id,
                    decision,
                    TransitionStatus.ALREADY_APPLIED,
                    transition_key,
                    consumption=consumption,
                    adjustment=adjustment,
                )

            logger.info(
                "stock_transition_applied",
                extra={
                    "action": decision.action.value,
                    "ingredient_count": len(adjustment.entries),
                    "shortfall_count": len(adjustment.shortfalls),
                    "skipped_count": len(adjustment.already_applied),
                },
            )
            return self._outcome(
                order_id,
                decision,
                TransitionStatus.APPLIED,
                transition_key,
                consumption=consumption,
                adjustment=adjustment,
            )

    def _transition_record(
        self,
        transition_key: str | None,
        order_id: int,
        decision: TransitionDecision,
        actor_id: int,
    ) -> TransitionRecord | None:
        if transition_key is None:
            return None
        return TransitionRecord(
            transition_key=transition_key,
            order_id=order_id,
            old_status=decision.old_status,
            new_status=decision.new_status,
            action=decision.action.value,
            actor_id=actor_id,
            applied_at=self._clock.now(),
        )

    @staticmethod
    def _outcome(
        order_id: int,
        decision: TransitionDecision,
        status: TransitionStatus,
        transition_key: str | None,
        consumption: ConsumptionMap | None = None,
        adjustment: AdjustmentResult | None = None,
    ) -> TransitionOutcome:
        return TransitionOutcome(
            order_id=order_id,
            old_status=decision.old_status,
            new_status=decision.new_status,
            action=decision.action,
            status=status,
            consumption=consumption,
            adjustment=adjustment,
            transition_key=transition_key,
        )
