"""Persistence and SQLModel definitions for the class budget web service.

The ledgers are read into memory, mutated by the domain objects and the
changed record is written back. Amounts are stored as integer cents.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import delete
from sqlmodel import Field, Session, SQLModel, create_engine, select

from ..allocation import AllocationPlan
from ..collection import CollectionLedger
from ..exceptions import NotFoundError
from ..expenses import ExpenseLedger
from ..models import (
    BudgetMode,
    ClassBudgetConfig,
    EventAllocation,
    ExpenseRecord,
    PaymentRecord,
    PaymentStatus,
    ValidationMode,
    utcnow,
)
from ..money import from_cents, to_cents
from ..onboarding import SetupState
from ..ops import StructuredLogger
from ..roster import Roster, RosterChild
from ..service import ClassBudget
from .config import SETUP_PROGRESS_KEY_PREFIX, SQLITE_FILE_NAME

# ---------------------------------------------------------------------------
# Database models
# ---------------------------------------------------------------------------
engine = create_engine(
    f"sqlite:///{SQLITE_FILE_NAME}",
    echo=False,
    connect_args={"check_same_thread": False},
)

# Ensure fresh metadata when re-importing in test contexts.
SQLModel.metadata.clear()


class SchoolClass(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    class_id: str = Field(index=True, unique=True)
    name: str = ""
    budget_type: str = BudgetMode.PER_CHILD.value  # per_child|fixed
    amount_per_child_cents: int = 0
    children_count: int = 0
    staff_count: int = 0
    total_budget_cents: int = 0
    validation_mode: str = ValidationMode.STRICT.value  # strict|permissive
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ClassEvent(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    class_id: str = Field(index=True)
    event_id: str
    name: str
    icon: str = ""
    kind: str = "holiday"  # holiday|birthday|custom
    audience: str = "children"  # children|staff
    enabled: bool = False
    amount_per_kid_cents: int = 0
    amount_per_staff_cents: int = 0
    kids_count: Optional[int] = None
    staff_count: Optional[int] = None
    is_paid: bool = False
    is_custom: bool = False
    event_date: Optional[date] = None
    updated_at: datetime = Field(default_factory=utcnow)


class Child(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    class_id: str = Field(index=True)
    child_id: str
    name: str
    parent_names: str = ""  # comma separated
    created_at: datetime = Field(default_factory=utcnow)


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    class_id: str = Field(index=True)
    child_id: str
    status: str = PaymentStatus.UNPAID.value  # paid|unpaid
    amount_cents: Optional[int] = None
    paid_at: Optional[datetime] = None


class Expense(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    class_id: str = Field(index=True)
    expense_id: str = Field(index=True)
    description: str
    amount_cents: int
    expense_date: date
    event_id: Optional[str] = None
    receipt_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class MetaKV(SQLModel, table=True):
    k: str = Field(primary_key=True)
    v: str


def create_db_and_tables() -> None:
    SQLModel.metadata.create_all(engine)


# ---------------------------------------------------------------------------
# Row <-> domain mapping
# ---------------------------------------------------------------------------
def get_class_row(session: Session, class_id: str) -> SchoolClass:
    row = session.exec(select(SchoolClass).where(SchoolClass.class_id == class_id)).first()
    if row is None:
        raise NotFoundError(f"Class '{class_id}' does not exist.")
    return row


def _config_from_row(row: SchoolClass) -> ClassBudgetConfig:
    return ClassBudgetConfig(
        amount_per_child=from_cents(row.amount_per_child_cents),
        children_count=row.children_count,
        staff_count=row.staff_count,
        mode=BudgetMode(row.budget_type),
        total_budget=from_cents(row.total_budget_cents),
    )


def _event_from_row(row: ClassEvent) -> EventAllocation:
    return EventAllocation(
        event_id=row.event_id,
        name=row.name,
        enabled=row.enabled,
        amount_per_kid=from_cents(row.amount_per_kid_cents),
        amount_per_staff=from_cents(row.amount_per_staff_cents),
        kids_count=row.kids_count,
        staff_count=row.staff_count,
        is_paid=row.is_paid,
        event_date=row.event_date,
        is_custom=row.is_custom,
        audience=row.audience,
        kind=row.kind,
        icon=row.icon,
    )


def _payment_from_row(row: Payment) -> PaymentRecord:
    return PaymentRecord(
        child_id=row.child_id,
        status=PaymentStatus(row.status),
        amount=from_cents(row.amount_cents) if row.amount_cents is not None else None,
        paid_at=row.paid_at,
    )


def _expense_from_row(row: Expense) -> ExpenseRecord:
    return ExpenseRecord(
        expense_id=row.expense_id,
        description=row.description,
        amount=from_cents(row.amount_cents),
        expense_date=row.expense_date,
        event_id=row.event_id,
        receipt_url=row.receipt_url,
        created_at=row.created_at,
    )


def load_class_budget(
    session: Session, class_id: str, *, logger: StructuredLogger | None = None
) -> ClassBudget:
    """Read the current state of all three ledgers for ``class_id``."""

    row = get_class_row(session, class_id)
    config = _config_from_row(row)
    events = session.exec(
        select(ClassEvent).where(ClassEvent.class_id == class_id).order_by(ClassEvent.id)
    ).all()
    payments = session.exec(select(Payment).where(Payment.class_id == class_id).order_by(Payment.id)).all()
    expenses = session.exec(select(Expense).where(Expense.class_id == class_id).order_by(Expense.id)).all()
    plan = AllocationPlan(config, events=[_event_from_row(event) for event in events])
    return ClassBudget(
        class_id,
        plan,
        collection=CollectionLedger(config, records=[_payment_from_row(payment) for payment in payments]),
        expenses=ExpenseLedger(expenses=[_expense_from_row(expense) for expense in expenses]),
        mode=ValidationMode(row.validation_mode),
        logger=logger,
    )


def load_roster(session: Session, class_id: str) -> Roster:
    rows = session.exec(select(Child).where(Child.class_id == class_id).order_by(Child.id)).all()
    return Roster.of(
        RosterChild(
            child_id=row.child_id,
            name=row.name,
            parent_names=tuple(name.strip() for name in row.parent_names.split(",") if name.strip()),
        )
        for row in rows
    )


# ---------------------------------------------------------------------------
# Write-back helpers (one record each)
# ---------------------------------------------------------------------------
def save_class(session: Session, budget: ClassBudget, *, name: str | None = None) -> SchoolClass:
    row = session.exec(select(SchoolClass).where(SchoolClass.class_id == budget.class_id)).first()
    if row is None:
        row = SchoolClass(class_id=budget.class_id)
    config = budget.config
    if name is not None:
        row.name = name
    row.budget_type = config.mode.value
    row.amount_per_child_cents = to_cents(config.amount_per_child)
    row.children_count = config.children_count
    row.staff_count = config.staff_count
    row.total_budget_cents = to_cents(config.total_budget)
    row.validation_mode = budget.mode.value
    row.updated_at = utcnow()
    session.add(row)
    return row


def save_event(session: Session, class_id: str, event: EventAllocation) -> ClassEvent:
    row = session.exec(
        select(ClassEvent).where(ClassEvent.class_id == class_id, ClassEvent.event_id == event.event_id)
    ).first()
    if row is None:
        row = ClassEvent(class_id=class_id, event_id=event.event_id, name=event.name)
    row.name = event.name
    row.icon = event.icon
    row.kind = event.kind.value
    row.audience = event.audience.value
    row.enabled = event.enabled
    row.amount_per_kid_cents = to_cents(event.amount_per_kid)
    row.amount_per_staff_cents = to_cents(event.amount_per_staff)
    row.kids_count = event.kids_count
    row.staff_count = event.staff_count
    row.is_paid = event.is_paid
    row.is_custom = event.is_custom
    row.event_date = event.event_date
    row.updated_at = utcnow()
    session.add(row)
    return row


def delete_event_row(session: Session, class_id: str, event_id: str) -> None:
    session.exec(delete(ClassEvent).where(ClassEvent.class_id == class_id, ClassEvent.event_id == event_id))


def save_payment(session: Session, class_id: str, record: PaymentRecord) -> Payment:
    row = session.exec(
        select(Payment).where(Payment.class_id == class_id, Payment.child_id == record.child_id)
    ).first()
    if row is None:
        row = Payment(class_id=class_id, child_id=record.child_id)
    row.status = record.status.value
    row.amount_cents = to_cents(record.amount) if record.amount is not None else None
    row.paid_at = record.paid_at
    session.add(row)
    return row


def delete_payment_row(session: Session, class_id: str, child_id: str) -> None:
    session.exec(delete(Payment).where(Payment.class_id == class_id, Payment.child_id == child_id))


def save_child(session: Session, class_id: str, child: RosterChild) -> Child:
    row = session.exec(
        select(Child).where(Child.class_id == class_id, Child.child_id == child.child_id)
    ).first()
    if row is None:
        row = Child(class_id=class_id, child_id=child.child_id, name=child.name)
    row.name = child.name
    row.parent_names = ", ".join(child.parent_names)
    session.add(row)
    return row


def delete_child_row(session: Session, class_id: str, child_id: str) -> None:
    session.exec(delete(Child).where(Child.class_id == class_id, Child.child_id == child_id))


def save_expense(session: Session, class_id: str, expense: ExpenseRecord) -> Expense:
    row = Expense(
        class_id=class_id,
        expense_id=expense.expense_id,
        description=expense.description,
        amount_cents=to_cents(expense.amount),
        expense_date=expense.expense_date,
        event_id=expense.event_id,
        receipt_url=expense.receipt_url,
        created_at=expense.created_at,
    )
    session.add(row)
    return row


def delete_expense_row(session: Session, class_id: str, expense_id: str) -> None:
    session.exec(delete(Expense).where(Expense.class_id == class_id, Expense.expense_id == expense_id))


# ---------------------------------------------------------------------------
# Setup progress
# ---------------------------------------------------------------------------
def load_setup_state(session: Session, class_id: str) -> SetupState:
    row = session.get(MetaKV, f"{SETUP_PROGRESS_KEY_PREFIX}{class_id}")
    if row is None:
        return SetupState()
    return SetupState.from_json(row.v)


def save_setup_state(session: Session, class_id: str, state: SetupState) -> MetaKV:
    key = f"{SETUP_PROGRESS_KEY_PREFIX}{class_id}"
    row = session.get(MetaKV, key)
    if row is None:
        row = MetaKV(k=key, v=state.to_json())
    else:
        row.v = state.to_json()
    session.add(row)
    return row


def list_class_ids(session: Session) -> List[str]:
    return list(session.exec(select(SchoolClass.class_id).order_by(SchoolClass.class_id)).all())


create_db_and_tables()


__all__ = [
    "engine",
    "SchoolClass",
    "ClassEvent",
    "Child",
    "Payment",
    "Expense",
    "MetaKV",
    "create_db_and_tables",
    "get_class_row",
    "load_class_budget",
    "load_roster",
    "save_class",
    "save_event",
    "delete_event_row",
    "save_payment",
    "delete_payment_row",
    "save_child",
    "delete_child_row",
    "save_expense",
    "delete_expense_row",
    "load_setup_state",
    "save_setup_state",
    "list_class_ids",
]
