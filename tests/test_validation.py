from decimal import Decimal

import pytest

from classbudget.allocation import AllocationPlan
from classbudget.exceptions import InvalidAmountError, NoEventsSelectedError, OverAllocatedError
from classbudget.models import ClassBudgetConfig, ValidationMode
from classbudget.validation import AllocationValidator


def over_allocated_plan() -> AllocationPlan:
    plan = AllocationPlan.from_catalog(ClassBudgetConfig(amount_per_child=100, children_count=10))
    plan.set_event_amounts("end-of-year", 120)
    plan.toggle_event("end-of-year", True)
    return plan


def test_strict_finish_rejects_over_allocation() -> None:
    plan = over_allocated_plan()
    assert plan.total_budget == Decimal("1000.00")
    assert plan.allocated_total() == Decimal("1200.00")

    validator = AllocationValidator(ValidationMode.STRICT)
    with pytest.raises(OverAllocatedError) as excinfo:
        validator.finish(plan)

    assert excinfo.value.allocation_remaining == Decimal("-200.00")


def test_permissive_finish_returns_warning() -> None:
    plan = over_allocated_plan()

    warning = AllocationValidator(ValidationMode.PERMISSIVE).finish(plan)

    assert warning is not None
    assert warning.allocation_remaining == Decimal("-200.00")
    assert warning.over_by == Decimal("200.00")
    assert warning.total == Decimal("1000.00")


def test_check_never_raises() -> None:
    validator = AllocationValidator(ValidationMode.STRICT)
    plan = over_allocated_plan()

    assert validator.check(plan) is not None
    plan.set_event_amounts("end-of-year", 100)
    assert validator.check(plan) is None


def test_strict_finish_requires_amount_and_events() -> None:
    validator = AllocationValidator(ValidationMode.STRICT)

    empty = AllocationPlan.from_catalog(ClassBudgetConfig(amount_per_child=0, children_count=10))
    with pytest.raises(InvalidAmountError):
        validator.finish(empty)

    no_events = AllocationPlan.from_catalog(ClassBudgetConfig(amount_per_child=100, children_count=10))
    with pytest.raises(NoEventsSelectedError):
        validator.finish(no_events)

    no_events.set_event_amounts("purim", 50)
    no_events.toggle_event("purim", True)
    assert validator.finish(no_events) is None


def test_fixed_total_skips_per_child_amount_check() -> None:
    plan = AllocationPlan.from_catalog(ClassBudgetConfig(children_count=10))
    plan.set_fixed_total(500)
    plan.toggle_event("purim", True)

    assert AllocationValidator(ValidationMode.STRICT).finish(plan) is None
