"""High level service coordinating one class's budget ledgers."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .admin import AuditLog
from .allocation import AllocationPlan
from .api import ApiExporter
from .collection import CollectionLedger, CollectionSummary
from .exceptions import NotFoundError
from .expenses import ExpenseLedger
from .i18n import Translator
from .metrics import compute, event_breakdown
from .models import (
    BudgetMetrics,
    ClassBudgetConfig,
    EventAllocation,
    EventBudgetLine,
    ExpenseRecord,
    OverBudgetWarning,
    PaymentRecord,
    ValidationMode,
)
from .money import AmountLike, format_currency
from .notifications import Notification, NotificationCenter, NotificationType
from .onboarding import SetupState, SetupTask
from .ops import StructuredLogger
from .roster import Roster
from .validation import AllocationValidator


class ClassBudget:
    """Manage the allocation plan, payments and expenses of one class.

    Plan mutations return an :class:`OverBudgetWarning` when the plan ends up
    over-allocated (``None`` otherwise); in permissive mode the warning is
    also queued as a notification. Metrics are always recomputed from the
    ledgers.
    """

    __slots__ = (
        "class_id",
        "_plan",
        "_collection",
        "_expenses",
        "_validator",
        "_notifications",
        "_audit_log",
        "_logger",
        "_translator",
        "_api",
    )

    def __init__(
        self,
        class_id: str,
        plan: AllocationPlan | None = None,
        *,
        collection: CollectionLedger | None = None,
        expenses: ExpenseLedger | None = None,
        mode: ValidationMode = ValidationMode.PERMISSIVE,
        logger: StructuredLogger | None = None,
        translator: Translator | None = None,
    ) -> None:
        self.class_id = class_id
        self._plan = plan if plan is not None else AllocationPlan.from_catalog()
        self._collection = collection if collection is not None else CollectionLedger(self._plan.config)
        self._expenses = expenses if expenses is not None else ExpenseLedger()
        self._validator = AllocationValidator(mode)
        self._notifications = NotificationCenter()
        self._audit_log = AuditLog()
        self._logger = logger or StructuredLogger()
        self._translator = translator or Translator()
        self._api = ApiExporter()

    @classmethod
    def create(
        cls,
        class_id: str,
        *,
        amount_per_child: AmountLike = 0,
        children_count: int = 0,
        staff_count: int = 0,
        include_builtin_events: bool = True,
        mode: ValidationMode = ValidationMode.STRICT,
        logger: StructuredLogger | None = None,
    ) -> "ClassBudget":
        """Start a new class budget, by default in strict onboarding mode."""

        config = ClassBudgetConfig(
            amount_per_child=amount_per_child,
            children_count=children_count,
            staff_count=staff_count,
        )
        plan = AllocationPlan.from_catalog(config) if include_builtin_events else AllocationPlan(config)
        budget = cls(class_id, plan, mode=mode, logger=logger)
        budget._logger.log(
            "class_budget_created",
            class_id=class_id,
            total=str(config.total_budget),
            mode=budget.mode.value,
        )
        return budget

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def plan(self) -> AllocationPlan:
        return self._plan

    @property
    def config(self) -> ClassBudgetConfig:
        return self._plan.config

    @property
    def collection(self) -> CollectionLedger:
        return self._collection

    @property
    def expenses(self) -> ExpenseLedger:
        return self._expenses

    @property
    def validator(self) -> AllocationValidator:
        return self._validator

    @property
    def mode(self) -> ValidationMode:
        return self._validator.mode

    @property
    def notifications(self) -> NotificationCenter:
        return self._notifications

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    def set_mode(self, mode: ValidationMode) -> None:
        self._validator.mode = ValidationMode(mode)
        self._logger.log("validation_mode_changed", class_id=self.class_id, mode=self.mode.value)

    # ------------------------------------------------------------------
    # Allocation plan
    # ------------------------------------------------------------------
    def edit_budget(
        self, amount_per_child: AmountLike, children_count: int, *, actor: str = "committee"
    ) -> Optional[OverBudgetWarning]:
        total = self._plan.set_total(amount_per_child, children_count)
        self._audit_log.record(actor, "edit_budget", self.class_id, details={"total": str(total)})
        self._logger.log(
            "budget_edited",
            class_id=self.class_id,
            amount_per_child=str(self.config.amount_per_child),
            children_count=self.config.children_count,
            total=str(total),
        )
        return self._after_plan_change()

    def set_fixed_total(self, total: AmountLike, *, actor: str = "committee") -> Optional[OverBudgetWarning]:
        value = self._plan.set_fixed_total(total)
        self._audit_log.record(actor, "edit_budget", self.class_id, details={"total": str(value)})
        self._logger.log("budget_edited", class_id=self.class_id, total=str(value), fixed=True)
        return self._after_plan_change()

    def set_staff_count(self, staff_count: int) -> Optional[OverBudgetWarning]:
        self._plan.set_staff_count(staff_count)
        self._logger.log("staff_count_changed", class_id=self.class_id, staff_count=staff_count)
        return self._after_plan_change()

    def toggle_event(self, event_id: str, enabled: bool) -> Optional[OverBudgetWarning]:
        event = self._plan.toggle_event(event_id, enabled)
        self._logger.log("event_toggled", class_id=self.class_id, event_id=event_id, enabled=event.enabled)
        return self._after_plan_change()

    def set_event_amounts(
        self, event_id: str, amount_per_kid: AmountLike, amount_per_staff: AmountLike = 0
    ) -> Optional[OverBudgetWarning]:
        event = self._plan.set_event_amounts(event_id, amount_per_kid, amount_per_staff)
        self._logger.log(
            "event_amounts_set",
            class_id=self.class_id,
            event_id=event_id,
            amount_per_kid=str(event.amount_per_kid),
            amount_per_staff=str(event.amount_per_staff),
        )
        return self._after_plan_change()

    def set_event_headcount(
        self,
        event_id: str,
        kids_count: Optional[int] = None,
        staff_count: Optional[int] = None,
    ) -> Optional[OverBudgetWarning]:
        event = self._plan.set_event_headcount(event_id, kids_count, staff_count)
        self._logger.log(
            "event_headcount_set",
            class_id=self.class_id,
            event_id=event_id,
            kids_count=event.kids_count,
            staff_count=event.staff_count,
        )
        return self._after_plan_change()

    def reset_event_headcount(self, event_id: str) -> Optional[OverBudgetWarning]:
        self._plan.reset_event_headcount(event_id)
        self._logger.log("event_headcount_reset", class_id=self.class_id, event_id=event_id)
        return self._after_plan_change()

    def set_event_paid(self, event_id: str, is_paid: bool = True) -> EventAllocation:
        event = self._plan.set_event_paid(event_id, is_paid)
        self._logger.log("event_paid_set", class_id=self.class_id, event_id=event_id, is_paid=event.is_paid)
        return event

    def set_event_date(self, event_id: str, event_date: Optional[date]) -> EventAllocation:
        event = self._plan.set_event_date(event_id, event_date)
        self._logger.log("event_date_set", class_id=self.class_id, event_id=event_id, event_date=event_date)
        return event

    def add_custom_event(self, name: str, *, event_date: Optional[date] = None) -> EventAllocation:
        event = self._plan.add_custom_event(name, event_date=event_date)
        self._logger.log("custom_event_added", class_id=self.class_id, event_id=event.event_id, name=event.name)
        return event

    def remove_custom_event(self, event_id: str) -> EventAllocation:
        event = self._plan.remove_custom_event(event_id)
        self._logger.log("custom_event_removed", class_id=self.class_id, event_id=event_id)
        return event

    def check_allocation(self) -> Optional[OverBudgetWarning]:
        return self._validator.check(self._plan)

    def finish(self) -> Optional[OverBudgetWarning]:
        """Run the mode-dependent finish action.

        Strict mode raises on an invalid plan and, once it passes, switches
        the class to permissive editing.
        """

        strict = self._validator.is_strict
        warning = self._validator.finish(self._plan)
        if strict:
            self._logger.log("setup_finished", class_id=self.class_id, total=str(self.config.total_budget))
            self.set_mode(ValidationMode.PERMISSIVE)
        elif warning is not None:
            self._queue_over_budget(warning)
        return warning

    def finish_budget_setup(self, state: SetupState) -> SetupState:
        """Finish the onboarding budget step and return the updated setup state."""

        self.finish()
        return state.complete(SetupTask.SETUP_BUDGET)

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------
    def sync_roster(self, roster: Roster) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        added, removed = self._collection.sync_roster(roster.child_ids())
        if added or removed:
            self._logger.log("roster_synced", class_id=self.class_id, added=list(added), removed=list(removed))
        return added, removed

    def register_child(self, child_id: str) -> PaymentRecord:
        record = self._collection.register_child(child_id)
        self._logger.log("child_registered", class_id=self.class_id, child_id=child_id)
        return record

    def remove_child(self, child_id: str) -> PaymentRecord:
        record = self._collection.drop_child(child_id)
        if record is None:
            raise NotFoundError(f"Child '{child_id}' is not registered.")
        self._logger.log("child_removed", class_id=self.class_id, child_id=child_id)
        return record

    def mark_paid(
        self, child_id: str, amount: AmountLike | None = None, *, actor: str = "committee"
    ) -> PaymentRecord:
        record = self._collection.mark_paid(child_id, amount)
        self._audit_log.record(actor, "mark_paid", child_id, details={"amount": str(record.amount)})
        self._logger.log("payment_marked", class_id=self.class_id, child_id=child_id, amount=str(record.amount))
        return record

    def mark_unpaid(self, child_id: str, *, actor: str = "committee") -> PaymentRecord:
        record = self._collection.mark_unpaid(child_id)
        self._audit_log.record(actor, "mark_unpaid", child_id)
        self._logger.log("payment_unmarked", class_id=self.class_id, child_id=child_id)
        return record

    def mark_many_paid(self, child_ids: Sequence[str], *, actor: str = "committee") -> Tuple[PaymentRecord, ...]:
        records = self._collection.mark_many_paid(child_ids)
        for record in records:
            self._audit_log.record(actor, "mark_paid", record.child_id, details={"amount": str(record.amount)})
        self._logger.log("payments_marked", class_id=self.class_id, child_ids=list(child_ids))
        return records

    def mark_many_unpaid(self, child_ids: Sequence[str], *, actor: str = "committee") -> Tuple[PaymentRecord, ...]:
        records = self._collection.mark_many_unpaid(child_ids)
        for record in records:
            self._audit_log.record(actor, "mark_unpaid", record.child_id)
        self._logger.log("payments_unmarked", class_id=self.class_id, child_ids=list(child_ids))
        return records

    def collection_summary(self) -> CollectionSummary:
        return self._collection.summary()

    def payment_reminder(
        self, roster: Roster, *, title: str | None = None, locale: str | None = None
    ) -> str:
        """Build a shareable reminder listing the households that have not paid."""

        t = self._translator
        label = title or t.translate("summary.title", locale=locale)
        lines = [
            t.translate("reminder.greeting", locale=locale),
            t.translate(
                "reminder.line",
                locale=locale,
                title=label,
                amount=format_currency(self.config.amount_per_child),
            ),
            "",
            t.translate("reminder.unpaid", locale=locale),
        ]
        unpaid = self._collection.unpaid_child_ids()
        lines.extend(roster.display_name(child_id) for child_id in unpaid)
        message = "\n".join(lines)
        self._notifications.queue(
            Notification(
                class_id=self.class_id,
                type=NotificationType.PAYMENT_REMINDER,
                subject=label,
                body=message,
                metadata={"unpaid_count": str(len(unpaid))},
            )
        )
        return message

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------
    def log_expense(
        self,
        description: str,
        amount: AmountLike,
        expense_date: Optional[date] = None,
        event_id: Optional[str] = None,
        *,
        receipt_url: Optional[str] = None,
        actor: str = "committee",
    ) -> ExpenseRecord:
        if event_id is not None and not self._plan.has_event(event_id):
            raise NotFoundError(f"Event '{event_id}' does not exist.")
        expense = self._expenses.add_expense(
            description, amount, expense_date, event_id, receipt_url=receipt_url
        )
        self._audit_log.record(actor, "add_expense", expense.expense_id, details={"amount": str(expense.amount)})
        self._logger.log(
            "expense_added",
            class_id=self.class_id,
            expense_id=expense.expense_id,
            amount=str(expense.amount),
            event_id=event_id,
        )
        if event_id is not None:
            self._check_event_spending(event_id)
        return expense

    def delete_expense(self, expense_id: str, *, actor: str = "committee") -> ExpenseRecord:
        expense = self._expenses.delete_expense(expense_id)
        self._audit_log.record(actor, "delete_expense", expense_id, details={"amount": str(expense.amount)})
        self._logger.log("expense_deleted", class_id=self.class_id, expense_id=expense_id, amount=str(expense.amount))
        return expense

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def metrics(self) -> BudgetMetrics:
        return compute(self._plan, self._collection, self._expenses)

    def event_breakdown(self) -> Tuple[EventBudgetLine, ...]:
        return event_breakdown(self._plan, self._expenses)

    def event_names(self) -> Dict[str, str]:
        return {event.event_id: event.name for event in self._plan.events}

    def export_expenses_csv(self) -> str:
        return self._expenses.export_csv(event_names=self.event_names())

    def summary(self, *, locale: str | None = None) -> str:
        t = self._translator
        metrics = self.metrics()
        rows: Iterable[tuple[str, Decimal]] = (
            ("metrics.total", metrics.total),
            ("metrics.allocated", metrics.allocated),
            ("metrics.allocation_remaining", metrics.allocation_remaining),
            ("metrics.collected", metrics.collected),
            ("metrics.spent", metrics.spent),
            ("metrics.cash_remaining", metrics.cash_remaining),
        )
        lines = [f"{t.translate('summary.title', locale=locale)}:"]
        for key, value in rows:
            lines.append(f"  {t.translate(key, locale=locale)}: {format_currency(value)}")
        if metrics.is_over_allocated:
            lines.append(f"  ! {t.translate('warning.over_allocated', locale=locale)}")
        return "\n".join(lines)

    def snapshot(self) -> Dict[str, object]:
        return self._api.class_snapshot(self)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _after_plan_change(self) -> Optional[OverBudgetWarning]:
        warning = self._validator.check(self._plan)
        if warning is not None and not self._validator.is_strict:
            self._queue_over_budget(warning)
        return warning

    def _queue_over_budget(self, warning: OverBudgetWarning) -> None:
        self._logger.log(
            "over_budget_warning",
            class_id=self.class_id,
            allocation_remaining=str(warning.allocation_remaining),
        )
        self._notifications.queue(
            Notification(
                class_id=self.class_id,
                type=NotificationType.OVER_BUDGET,
                subject=self._translator.translate("warning.over_allocated"),
                body=f"{format_currency(warning.allocated)} / {format_currency(warning.total)}",
                metadata={"over_by": str(warning.over_by)},
            )
        )

    def _check_event_spending(self, event_id: str) -> None:
        allocated = self._plan.event_allocated(event_id)
        spent = self._expenses.spent(event_id)
        if spent <= allocated:
            return
        event = self._plan.get_event(event_id)
        self._logger.log(
            "event_overspent",
            class_id=self.class_id,
            event_id=event_id,
            allocated=str(allocated),
            spent=str(spent),
        )
        self._notifications.queue(
            Notification(
                class_id=self.class_id,
                type=NotificationType.EVENT_OVERSPENT,
                subject=event.name,
                body=f"{format_currency(spent)} / {format_currency(allocated)}",
                metadata={"event_id": event_id},
            )
        )


__all__ = ["ClassBudget"]
