"""Expense ledger: discrete expenditures, optionally tagged to an event."""

from __future__ import annotations

import csv
from collections import defaultdict
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Callable, Dict, Iterable, Optional, Tuple
from uuid import uuid4

from .exceptions import EmptyDescriptionError, NotFoundError
from .models import ExpenseRecord
from .money import ZERO, AmountLike, to_amount


class ExpenseLedger:
    """Append/delete log of expenses with a derived ``spent`` sum.

    Totals are never cached; every read walks the current records.
    """

    __slots__ = ("_expenses", "_today")

    def __init__(
        self,
        *,
        expenses: Iterable[ExpenseRecord] = (),
        today: Callable[[], date] = date.today,
    ) -> None:
        self._today = today
        self._expenses: Dict[str, ExpenseRecord] = {}
        for expense in expenses:
            self.restore(expense)

    @property
    def expenses(self) -> Tuple[ExpenseRecord, ...]:
        return tuple(self._expenses.values())

    def __len__(self) -> int:
        return len(self._expenses)

    def get_expense(self, expense_id: str) -> ExpenseRecord:
        try:
            return self._expenses[expense_id]
        except KeyError as exc:
            raise NotFoundError(f"Expense '{expense_id}' does not exist.") from exc

    def restore(self, expense: ExpenseRecord) -> ExpenseRecord:
        """Re-insert a previously stored record, keeping its id."""

        if expense.expense_id in self._expenses:
            raise ValueError(f"Expense '{expense.expense_id}' is already loaded.")
        self._expenses[expense.expense_id] = expense
        return expense

    def add_expense(
        self,
        description: str,
        amount: AmountLike,
        expense_date: Optional[date] = None,
        event_id: Optional[str] = None,
        *,
        receipt_url: Optional[str] = None,
    ) -> ExpenseRecord:
        """Append a new expense.

        Expenses are not checked against the remaining budget; going over an
        allocation is reported by the metrics, not refused here.
        """

        value = to_amount(amount, allow_zero=False)
        cleaned = (description or "").strip()
        if not cleaned:
            raise EmptyDescriptionError("Expense description must not be blank.")
        record = ExpenseRecord(
            expense_id=str(uuid4()),
            description=cleaned,
            amount=value,
            expense_date=expense_date or self._today(),
            event_id=event_id or None,
            receipt_url=receipt_url or None,
        )
        self._expenses[record.expense_id] = record
        return record

    def delete_expense(self, expense_id: str) -> ExpenseRecord:
        record = self.get_expense(expense_id)
        del self._expenses[expense_id]
        return record

    def spent(self, event_id: Optional[str] = None, *, general: bool = False) -> Decimal:
        """Sum of expense amounts.

        With ``event_id`` only that event's expenses are counted; with
        ``general=True`` only expenses not tagged to any event.
        """

        if general and event_id is not None:
            raise ValueError("Pass either event_id or general=True, not both.")
        return sum(
            (expense.amount for expense in self._filter(event_id, general)),
            ZERO,
        )

    def spent_by_event(self) -> Dict[Optional[str], Decimal]:
        """Totals keyed by event id; general expenses sit under ``None``."""

        totals: Dict[Optional[str], Decimal] = defaultdict(lambda: ZERO)
        for expense in self._expenses.values():
            totals[expense.event_id] += expense.amount
        return dict(totals)

    def list_expenses(
        self, event_id: Optional[str] = None, *, general: bool = False
    ) -> Tuple[ExpenseRecord, ...]:
        """Return matching expenses, newest ``expense_date`` first."""

        return tuple(
            sorted(
                self._filter(event_id, general),
                key=lambda expense: (expense.expense_date, expense.created_at),
                reverse=True,
            )
        )

    def export_csv(self, *, event_names: Optional[Dict[str, str]] = None) -> str:
        """Return a CSV export of the ledger, newest first."""

        names = event_names or {}
        buffer = StringIO()
        writer = csv.writer(buffer)
        writer.writerow(["date", "description", "event", "amount", "receipt_url"])
        for expense in self.list_expenses():
            event_label = names.get(expense.event_id, expense.event_id) if expense.event_id else ""
            writer.writerow(
                [
                    expense.expense_date.isoformat(),
                    expense.description,
                    event_label,
                    f"{expense.amount:.2f}",
                    expense.receipt_url or "",
                ]
            )
        return buffer.getvalue()

    def _filter(self, event_id: Optional[str], general: bool) -> Iterable[ExpenseRecord]:
        for expense in self._expenses.values():
            if general and expense.event_id is not None:
                continue
            if event_id is not None and expense.event_id != event_id:
                continue
            yield expense


__all__ = ["ExpenseLedger"]
