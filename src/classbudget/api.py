"""Convert ledger data structures to JSON friendly dictionaries."""

from __future__ import annotations

import json
from typing import Dict, TYPE_CHECKING

from .collection import CollectionSummary
from .models import BudgetMetrics, EventAllocation, EventBudgetLine, ExpenseRecord, OverBudgetWarning, PaymentRecord

if TYPE_CHECKING:  # pragma: no cover
    from .allocation import AllocationPlan
    from .service import ClassBudget


class ApiExporter:
    """Serialise budget state for the HTTP layer and for exports.

    Money is emitted as strings to keep exact decimal values.
    """

    def class_snapshot(self, budget: "ClassBudget") -> Dict[str, object]:
        config = budget.config
        return {
            "class_id": budget.class_id,
            "mode": budget.validator.mode.value,
            "budget": {
                "type": config.mode.value,
                "amount_per_child": str(config.amount_per_child),
                "children_count": config.children_count,
                "staff_count": config.staff_count,
                "total_budget": str(config.total_budget),
            },
            "metrics": self.metrics(budget.metrics()),
            "events": [self.event(budget.plan, event) for event in budget.plan.events],
            "payments": self.collection(budget.collection_summary()),
            "expenses": [self.expense(expense) for expense in budget.expenses.list_expenses()],
        }

    def metrics(self, metrics: BudgetMetrics) -> Dict[str, object]:
        payload: Dict[str, object] = dict(metrics.as_dict())
        payload["is_over_allocated"] = metrics.is_over_allocated
        payload["is_overspent"] = metrics.is_overspent
        payload["spent_percentage"] = int(metrics.spent_percentage())
        return payload

    def event(self, plan: "AllocationPlan", event: EventAllocation) -> Dict[str, object]:
        kids = plan.kids_count_for(event)
        staff = plan.staff_count_for(event)
        return {
            "event_id": event.event_id,
            "name": event.name,
            "icon": event.icon,
            "kind": event.kind.value,
            "audience": event.audience.value,
            "enabled": event.enabled,
            "is_custom": event.is_custom,
            "is_paid": event.is_paid,
            "event_date": event.event_date.isoformat() if event.event_date else None,
            "amount_per_kid": str(event.amount_per_kid),
            "amount_per_staff": str(event.amount_per_staff),
            "kids_count": kids,
            "staff_count": staff,
            "allocated_for_kids": str(event.allocated_for_kids(kids)),
            "allocated_for_staff": str(event.allocated_for_staff(staff)),
            "allocated_total": str(event.allocated_total(kids, staff)),
        }

    def event_line(self, line: EventBudgetLine) -> Dict[str, object]:
        return {
            "event_id": line.event_id,
            "name": line.name,
            "enabled": line.enabled,
            "allocated": str(line.allocated),
            "spent": str(line.spent),
            "remaining": str(line.remaining),
            "overspent": line.overspent,
        }

    def payment(self, record: PaymentRecord) -> Dict[str, object]:
        return {
            "child_id": record.child_id,
            "status": record.status.value,
            "amount": str(record.amount) if record.amount is not None else None,
            "paid_at": record.paid_at.isoformat() if record.paid_at else None,
        }

    def collection(self, summary: CollectionSummary) -> Dict[str, object]:
        return {
            "expected_children": summary.expected_children,
            "registered_children": summary.registered_children,
            "paid_count": summary.paid_count,
            "unpaid_count": summary.unpaid_count,
            "not_registered": summary.not_registered,
            "collected": str(summary.collected),
            "expected_total": str(summary.expected_total),
            "progress_percentage": int(summary.progress_percentage()),
            "health": summary.health.value,
        }

    def expense(self, expense: ExpenseRecord) -> Dict[str, object]:
        return {
            "expense_id": expense.expense_id,
            "description": expense.description,
            "amount": str(expense.amount),
            "expense_date": expense.expense_date.isoformat(),
            "event_id": expense.event_id,
            "receipt_url": expense.receipt_url,
        }

    def warning(self, warning: OverBudgetWarning | None) -> Dict[str, object] | None:
        if warning is None:
            return None
        return {
            "total": str(warning.total),
            "allocated": str(warning.allocated),
            "allocation_remaining": str(warning.allocation_remaining),
            "over_by": str(warning.over_by),
        }

    def to_json(self, payload: Dict[str, object]) -> str:
        return json.dumps(payload, sort_keys=True, ensure_ascii=False)


__all__ = ["ApiExporter"]
