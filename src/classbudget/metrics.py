"""Pure aggregation of the three ledgers into the figures every view shows."""

from __future__ import annotations

from typing import Tuple

from .allocation import AllocationPlan
from .collection import CollectionLedger
from .expenses import ExpenseLedger
from .models import BudgetMetrics, EventBudgetLine
from .money import ZERO


def compute(plan: AllocationPlan, ledger: CollectionLedger, expenses: ExpenseLedger) -> BudgetMetrics:
    """Return the canonical :class:`BudgetMetrics` for the current state.

    ``allocation_remaining = total - allocated`` answers how much of the
    planned budget is not yet assigned to an event; ``cash_remaining =
    collected - spent`` answers how much money is on hand. Neither depends on
    the other's inputs.
    """

    total = plan.total_budget
    allocated = plan.allocated_total()
    collected = ledger.collected()
    spent = expenses.spent()
    return BudgetMetrics(
        total=total,
        allocated=allocated,
        collected=collected,
        spent=spent,
        allocation_remaining=total - allocated,
        cash_remaining=collected - spent,
    )


def event_breakdown(plan: AllocationPlan, expenses: ExpenseLedger) -> Tuple[EventBudgetLine, ...]:
    """Allocated versus spent per event, in plan order.

    Disabled events are listed only when money was spent against them.
    """

    spent_by_event = expenses.spent_by_event()
    lines = []
    for event in plan.events:
        spent = spent_by_event.get(event.event_id)
        if not event.enabled and spent is None:
            continue
        lines.append(
            EventBudgetLine(
                event_id=event.event_id,
                name=event.name,
                enabled=event.enabled,
                allocated=plan.event_allocated(event.event_id),
                spent=spent if spent is not None else ZERO,
            )
        )
    return tuple(lines)


def overspent_events(plan: AllocationPlan, expenses: ExpenseLedger) -> Tuple[EventBudgetLine, ...]:
    return tuple(line for line in event_breakdown(plan, expenses) if line.overspent)


__all__ = ["compute", "event_breakdown", "overspent_events"]
