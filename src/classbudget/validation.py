"""Mode-dependent policy over allocation plans."""

from __future__ import annotations

from typing import Optional

from .allocation import AllocationPlan
from .exceptions import InvalidAmountError, NoEventsSelectedError, OverAllocatedError
from .models import BudgetMode, OverBudgetWarning, ValidationMode
from .money import ZERO


class AllocationValidator:
    """Gate the "finish" action of a plan.

    In :attr:`ValidationMode.STRICT` (first-time setup) an over-allocated
    plan cannot be finished. In :attr:`ValidationMode.PERMISSIVE` (ongoing
    editing) the same plan is accepted and an :class:`OverBudgetWarning` is
    returned instead.
    """

    __slots__ = ("mode",)

    def __init__(self, mode: ValidationMode = ValidationMode.PERMISSIVE) -> None:
        self.mode = ValidationMode(mode)

    @property
    def is_strict(self) -> bool:
        return self.mode is ValidationMode.STRICT

    def check(self, plan: AllocationPlan) -> Optional[OverBudgetWarning]:
        """Return a warning when allocations exceed the total; never raises."""

        allocated = plan.allocated_total()
        remaining = plan.total_budget - allocated
        if remaining >= ZERO:
            return None
        return OverBudgetWarning(
            total=plan.total_budget,
            allocated=allocated,
            allocation_remaining=remaining,
        )

    def finish(self, plan: AllocationPlan) -> Optional[OverBudgetWarning]:
        warning = self.check(plan)
        if not self.is_strict:
            return warning
        config = plan.config
        if config.mode is BudgetMode.PER_CHILD and config.amount_per_child <= ZERO:
            raise InvalidAmountError("Amount per child must be greater than zero.")
        if not plan.enabled_events():
            raise NoEventsSelectedError("Select at least one event before finishing setup.")
        if warning is not None:
            raise OverAllocatedError(warning.allocation_remaining)
        return None


__all__ = ["AllocationValidator"]
