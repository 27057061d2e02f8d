"""
TransitionPolicy -- classify an order status transition into a stock action.

Responsibility:
    Decides, for one (old status, new status) pair, whether ingredients must
    be consumed, returned, or left alone.  Pure: it never loads orders and
    never touches stock.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Used by
    StockTransitionService (orchestration) and exposed to the
    order-management collaborator as ``requires_adjustment``.

Classification (evaluated once per transition):

    wasConsuming | isConsuming | isReturning | Action
    -------------|-------------|-------------|--------
    false        | true        |  -          | CONSUME   (entered fulfillment)
    true         |  -          | true        | RETURN    (cancelled after fulfillment started)
    true         | false       | false       | RETURN    (left fulfillment for a neutral status)
    otherwise                                | NO_OP

Invariants enforced:
    - Consuming-to-consuming moves (PREPARING -> READY) are NO_OP, so stock
      is debited once, when fulfillment begins.
    - The third row applies to ANY neutral status, including a revert to
      PENDING.  It is kept exactly as the order flow has always behaved and
      is pending product-owner review (see DESIGN.md).
    - Status comparison is exact and case-sensitive.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from stock_kernel.domain.values import StockAction

DEFAULT_CONSUMING_STATUSES: frozenset[str] = frozenset({"PREPARING", "READY", "COMPLETED"})
DEFAULT_RETURNING_STATUSES: frozenset[str] = frozenset({"CANCELLED"})


class TransitionRule(str, Enum):
    """Which row of the classification table matched."""

    ENTERED_FULFILLMENT = "entered_fulfillment"
    CANCELLED_AFTER_FULFILLMENT = "cancelled_after_fulfillment"
    LEFT_FULFILLMENT = "left_fulfillment"
    NONE = "none"


_ACTION_BY_RULE = {
    TransitionRule.ENTERED_FULFILLMENT: StockAction.CONSUME,
    TransitionRule.CANCELLED_AFTER_FULFILLMENT: StockAction.RETURN,
    TransitionRule.LEFT_FULFILLMENT: StockAction.RETURN,
    TransitionRule.NONE: StockAction.NO_OP,
}


@dataclass(frozen=True, slots=True)
class TransitionDecision:
    """Classification result for one status transition."""

    old_status: str
    new_status: str
    rule: TransitionRule

    @property
    def action(self) -> StockAction:
        return _ACTION_BY_RULE[self.rule]

    @property
    def requires_adjustment(self) -> bool:
        return self.action is not StockAction.NO_OP

    def reason(self, order_id: int) -> str:
        """Ledger reason text naming the order and the direction."""
        if self.rule is TransitionRule.ENTERED_FULFILLMENT:
            return (
                f"Order {order_id} status changed to stock-consuming status "
                f"({self.old_status} -> {self.new_status})"
            )
        if self.rule is TransitionRule.CANCELLED_AFTER_FULFILLMENT:
            return f"Order {order_id} was cancelled - returning ingredients to stock"
        if self.rule is TransitionRule.LEFT_FULFILLMENT:
            return (
                f"Order {order_id} moved from consuming to non-consuming status "
                f"- returning ingredients to stock"
            )
        return f"Order {order_id} status change {self.old_status} -> {self.new_status}"


class TransitionPolicy:
    """
    Status partition plus the classification table.

    Contract:
        ``consuming_statuses`` and ``returning_statuses`` must be disjoint;
        every other status is neutral.

    Raises:
        TypeError: if either status set is passed as a bare string.
        ValueError: if the two status sets overlap.
    """

    def __init__(
        self,
        consuming_statuses: Iterable[str] = DEFAULT_CONSUMING_STATUSES,
        returning_statuses: Iterable[str] = DEFAULT_RETURNING_STATUSES,
    ):
        for label, statuses in (
            ("consuming_statuses", consuming_statuses),
            ("returning_statuses", returning_statuses),
        ):
            if isinstance(statuses, str):
                raise TypeError(
                    f"{label} must be a collection of statuses, not the string {statuses!r}"
                )
        self.consuming_statuses = frozenset(consuming_statuses)
        self.returning_statuses = frozenset(returning_statuses)
        overlap = self.consuming_statuses & self.returning_statuses
        if overlap:
            raise ValueError(
                f"Statuses cannot both consume and return stock: {sorted(overlap)}"
            )

    def decide(self, old_status: str, new_status: str) -> TransitionDecision:
        was_consuming = old_status in self.consuming_statuses
        is_consuming = new_status in self.consuming_statuses
        is_returning = new_status in self.returning_statuses

        if not was_consuming and is_consuming:
            rule = TransitionRule.ENTERED_FULFILLMENT
        elif was_consuming and is_returning:
            rule = TransitionRule.CANCELLED_AFTER_FULFILLMENT
        elif was_consuming and not is_consuming and not is_returning:
            rule = TransitionRule.LEFT_FULFILLMENT
        else:
            rule = TransitionRule.NONE

        return TransitionDecision(old_status=old_status, new_status=new_status, rule=rule)

    def classify(self, old_status: str, new_status: str) -> StockAction:
        return self.decide(old_status, new_status).action

    def requires_adjustment(self, old_status: str, new_status: str) -> bool:
        return self.decide(old_status, new_status).requires_adjustment


DEFAULT_POLICY = TransitionPolicy()


def requires_adjustment(old_status: str, new_status: str) -> bool:
    """Whether the transition needs a stock adjustment under the default statuses."""
    return DEFAULT_POLICY.requires_adjustment(old_status, new_status)
