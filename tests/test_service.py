from datetime import date
from decimal import Decimal

import pytest

from classbudget.exceptions import NotFoundError, OverAllocatedError
from classbudget.models import ValidationMode
from classbudget.notifications import NotificationType
from classbudget.onboarding import SetupState, SetupTask, TaskStatus
from classbudget.roster import Roster, RosterChild
from classbudget.service import ClassBudget


def make_budget(mode: ValidationMode = ValidationMode.PERMISSIVE) -> ClassBudget:
    return ClassBudget.create("gan-rimon", amount_per_child=200, children_count=25, staff_count=2, mode=mode)


def test_create_starts_strict_with_catalog_events() -> None:
    budget = ClassBudget.create("gan-rimon", amount_per_child=200, children_count=25)

    assert budget.mode is ValidationMode.STRICT
    assert budget.config.total_budget == Decimal("5000.00")
    assert budget.plan.has_event("hanukkah")
    assert budget.logger.events("class_budget_created")[0]["class_id"] == "gan-rimon"


def test_strict_finish_blocks_then_switches_to_permissive() -> None:
    budget = make_budget(ValidationMode.STRICT)
    budget.set_event_amounts("end-of-year", 300)
    warning = budget.toggle_event("end-of-year", True)

    assert warning is not None
    assert warning.allocation_remaining == Decimal("-2500.00")
    assert budget.notifications.pending() == ()
    with pytest.raises(OverAllocatedError):
        budget.finish()
    assert budget.mode is ValidationMode.STRICT

    budget.set_event_amounts("end-of-year", 100)
    state = budget.finish_budget_setup(SetupState(estimated_children=25))
    assert budget.mode is ValidationMode.PERMISSIVE
    assert state.status(SetupTask.SETUP_BUDGET) is TaskStatus.COMPLETED
    assert budget.logger.events("setup_finished")


def test_permissive_edits_queue_over_budget_notifications() -> None:
    budget = make_budget()
    budget.set_event_amounts("purim", 150, 100)

    assert budget.toggle_event("purim", True) is None

    warning = budget.edit_budget(100, 25)

    # 150 * 25 + 100 * 2
    assert warning is not None
    assert warning.allocated == Decimal("3950.00")
    pending = budget.notifications.pending(notification_type=NotificationType.OVER_BUDGET)
    assert len(pending) == 1
    assert pending[0].metadata["over_by"] == "1450.00"
    assert budget.finish() is not None
    assert budget.audit_log.latest(target="gan-rimon").action == "edit_budget"


def test_payments_and_reminder() -> None:
    budget = make_budget()
    roster = Roster.of(
        [
            RosterChild("c1", "Noa", ("Dana", "Yossi")),
            RosterChild("c2", "Itai"),
            RosterChild("c3", "Maya", ("Rina",)),
        ]
    )
    added, removed = budget.sync_roster(roster)
    assert added == ("c1", "c2", "c3")
    assert removed == ()

    budget.mark_paid("c2")
    budget.mark_many_paid(["c3"])
    budget.mark_unpaid("c3")

    assert budget.metrics().collected == Decimal("200.00")
    message = budget.payment_reminder(roster, title="Year gift", locale="en")
    assert "Year gift" in message
    assert "₪200.00" in message
    assert "Noa (Dana, Yossi)" in message
    assert "Maya (Rina)" in message
    assert "Itai" not in message
    assert budget.notifications.pending(notification_type=NotificationType.PAYMENT_REMINDER)

    budget.remove_child("c1")
    with pytest.raises(NotFoundError):
        budget.remove_child("c1")
    assert budget.collection_summary().registered_children == 2


def test_bulk_unpaid_audits_each_child() -> None:
    budget = make_budget()
    budget.sync_roster(Roster.of([RosterChild("c1", "Noa"), RosterChild("c2", "Itai"), RosterChild("c3", "Maya")]))
    budget.mark_many_paid(["c1", "c2", "c3"])

    with pytest.raises(NotFoundError):
        budget.mark_many_unpaid(["c1", "ghost"], actor="dana")
    assert budget.metrics().collected == Decimal("600.00")

    budget.mark_many_unpaid(["c1", "c3"], actor="dana")

    assert budget.metrics().collected == Decimal("200.00")
    assert budget.audit_log.latest(target="c3").action == "mark_unpaid"
    assert budget.audit_log.latest(target="c2").action == "mark_paid"
    assert budget.logger.events("payments_unmarked")[0]["child_ids"] == ["c1", "c3"]


def test_expenses_flag_overspent_events() -> None:
    budget = make_budget()
    budget.set_event_amounts("hanukkah", 2)
    budget.toggle_event("hanukkah", True)

    budget.log_expense("Candles", 40, date(2024, 12, 20), "hanukkah")
    assert budget.notifications.pending(notification_type=NotificationType.EVENT_OVERSPENT) == ()

    expense = budget.log_expense("Donuts", 60, date(2024, 12, 21), "hanukkah")
    overspent = budget.notifications.pending(notification_type=NotificationType.EVENT_OVERSPENT)
    assert len(overspent) == 1
    assert overspent[0].metadata["event_id"] == "hanukkah"
    assert [line.overspent for line in budget.event_breakdown()] == [True]

    with pytest.raises(NotFoundError):
        budget.log_expense("Ghost", 5, event_id="nope")

    budget.delete_expense(expense.expense_id)
    assert budget.metrics().spent == Decimal("40.00")
    assert "Candles" in budget.export_expenses_csv()


def test_custom_event_removal_keeps_tagged_expenses_counted() -> None:
    budget = make_budget()
    trip = budget.add_custom_event("Zoo trip")
    budget.set_event_amounts(trip.event_id, 30)
    budget.log_expense("Tickets", 500, event_id=trip.event_id)

    budget.remove_custom_event(trip.event_id)

    assert budget.metrics().spent == Decimal("500.00")
    assert budget.metrics().allocated == Decimal("0.00")
    assert budget.event_breakdown() == ()


def test_summary_labels_both_remaining_figures() -> None:
    budget = make_budget()
    budget.set_event_amounts("purim", 300)
    budget.toggle_event("purim", True)

    hebrew = budget.summary()
    english = budget.summary(locale="en")

    assert "יתרה לתכנון" in hebrew
    assert "יתרה בקופה" in hebrew
    assert "Left to allocate: -₪2,500.00" in english
    assert "Cash on hand: ₪0.00" in english
    assert "Allocations exceed the budget" in english
    assert budget.snapshot()["metrics"]["is_over_allocated"] is True
