"""Domain models used by the classbudget package."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Optional

from .money import CENT, ZERO, AmountLike, to_amount, to_count


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BudgetMode(str, Enum):
    """How the class total is derived."""

    PER_CHILD = "per_child"
    FIXED = "fixed"


class Audience(str, Enum):
    """Which headcount an event is primarily planned for."""

    CHILDREN = "children"
    STAFF = "staff"


class EventKind(str, Enum):
    HOLIDAY = "holiday"
    BIRTHDAY = "birthday"
    CUSTOM = "custom"


class PaymentStatus(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"


class ValidationMode(str, Enum):
    """Validation posture: strict during onboarding, permissive afterwards."""

    STRICT = "strict"
    PERMISSIVE = "permissive"


@dataclass(slots=True)
class ClassBudgetConfig:
    """Budget settings for one class.

    In :attr:`BudgetMode.PER_CHILD` mode ``total_budget`` always equals
    ``amount_per_child * children_count``; the setters below update the
    operands and the total together.
    """

    amount_per_child: Decimal = ZERO
    children_count: int = 0
    staff_count: int = 0
    mode: BudgetMode = BudgetMode.PER_CHILD
    total_budget: Decimal = ZERO

    def __post_init__(self) -> None:
        amount = to_amount(self.amount_per_child)
        children = to_count(self.children_count, label="children_count")
        staff = to_count(self.staff_count, label="staff_count")
        mode = BudgetMode(self.mode)
        if mode is BudgetMode.PER_CHILD:
            total = amount * children
        else:
            total = to_amount(self.total_budget)
        self.amount_per_child = amount
        self.children_count = children
        self.staff_count = staff
        self.mode = mode
        self.total_budget = total.quantize(CENT)

    def set_per_child(self, amount_per_child: AmountLike, children_count: int) -> Decimal:
        """Switch to per-child mode and recompute the total."""

        amount = to_amount(amount_per_child)
        children = to_count(children_count, label="children_count")
        self.amount_per_child = amount
        self.children_count = children
        self.mode = BudgetMode.PER_CHILD
        self.total_budget = (amount * children).quantize(CENT)
        return self.total_budget

    def set_fixed_total(self, total: AmountLike) -> Decimal:
        value = to_amount(total)
        self.mode = BudgetMode.FIXED
        self.total_budget = value
        return value

    def set_children_count(self, children_count: int) -> None:
        children = to_count(children_count, label="children_count")
        self.children_count = children
        if self.mode is BudgetMode.PER_CHILD:
            self.total_budget = (self.amount_per_child * children).quantize(CENT)

    def set_staff_count(self, staff_count: int) -> None:
        self.staff_count = to_count(staff_count, label="staff_count")


@dataclass(slots=True)
class EventAllocation:
    """A planned budget slot for one calendar event.

    ``kids_count`` and ``staff_count`` are per-event overrides; ``None``
    means "use the class headcount".
    """

    event_id: str
    name: str
    enabled: bool = False
    amount_per_kid: Decimal = ZERO
    amount_per_staff: Decimal = ZERO
    kids_count: Optional[int] = None
    staff_count: Optional[int] = None
    is_paid: bool = False
    event_date: Optional[date] = None
    is_custom: bool = False
    audience: Audience = Audience.CHILDREN
    kind: EventKind = EventKind.HOLIDAY
    icon: str = ""

    def __post_init__(self) -> None:
        self.amount_per_kid = to_amount(self.amount_per_kid)
        self.amount_per_staff = to_amount(self.amount_per_staff)
        if self.kids_count is not None:
            self.kids_count = to_count(self.kids_count, label="kids_count")
        if self.staff_count is not None:
            self.staff_count = to_count(self.staff_count, label="staff_count")
        self.audience = Audience(self.audience)
        self.kind = EventKind(self.kind)

    def effective_kids(self, default: int) -> int:
        return default if self.kids_count is None else self.kids_count

    def effective_staff(self, default: int) -> int:
        return default if self.staff_count is None else self.staff_count

    def allocated_for_kids(self, default_kids: int) -> Decimal:
        return (self.amount_per_kid * self.effective_kids(default_kids)).quantize(CENT)

    def allocated_for_staff(self, default_staff: int) -> Decimal:
        return (self.amount_per_staff * self.effective_staff(default_staff)).quantize(CENT)

    def allocated_total(self, default_kids: int, default_staff: int) -> Decimal:
        """Return the event's allocation, or zero while it is disabled."""

        if not self.enabled:
            return ZERO
        return self.allocated_for_kids(default_kids) + self.allocated_for_staff(default_staff)


@dataclass(slots=True)
class PaymentRecord:
    """Payment status of one child's household."""

    child_id: str
    status: PaymentStatus = PaymentStatus.UNPAID
    amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.status = PaymentStatus(self.status)
        if self.status is PaymentStatus.UNPAID:
            self.amount = None
            self.paid_at = None
        elif self.amount is not None:
            self.amount = to_amount(self.amount)

    @property
    def is_paid(self) -> bool:
        return self.status is PaymentStatus.PAID

    def mark_paid(self, amount: Decimal, *, when: datetime | None = None) -> None:
        self.status = PaymentStatus.PAID
        self.amount = amount
        self.paid_at = when or utcnow()

    def mark_unpaid(self) -> None:
        self.status = PaymentStatus.UNPAID
        self.amount = None
        self.paid_at = None


@dataclass(slots=True)
class ExpenseRecord:
    """A discrete expenditure, optionally tagged to an event."""

    expense_id: str
    description: str
    amount: Decimal
    expense_date: date
    event_id: Optional[str] = None
    receipt_url: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.amount = to_amount(self.amount, allow_zero=False)

    @property
    def is_general(self) -> bool:
        return self.event_id is None


@dataclass(frozen=True, slots=True)
class BudgetMetrics:
    """Derived budget figures shown by every view.

    ``allocation_remaining`` is the planned budget not yet assigned to an
    event and may be negative. ``cash_remaining`` is the money actually on
    hand.
    """

    total: Decimal
    allocated: Decimal
    collected: Decimal
    spent: Decimal
    allocation_remaining: Decimal
    cash_remaining: Decimal

    @property
    def is_over_allocated(self) -> bool:
        return self.allocation_remaining < ZERO

    @property
    def is_overspent(self) -> bool:
        return self.cash_remaining < ZERO

    def spent_percentage(self) -> Decimal:
        """Share of the total budget already spent, as a percentage."""

        if self.total <= ZERO:
            return Decimal("0")
        ratio = self.spent / self.total * Decimal(100)
        return ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    def as_dict(self) -> Dict[str, str]:
        return {
            "total": str(self.total),
            "allocated": str(self.allocated),
            "collected": str(self.collected),
            "spent": str(self.spent),
            "allocation_remaining": str(self.allocation_remaining),
            "cash_remaining": str(self.cash_remaining),
        }


@dataclass(frozen=True, slots=True)
class OverBudgetWarning:
    """Advisory signal that allocations exceed the total budget."""

    total: Decimal
    allocated: Decimal
    allocation_remaining: Decimal

    @property
    def over_by(self) -> Decimal:
        return -self.allocation_remaining


@dataclass(frozen=True, slots=True)
class EventBudgetLine:
    """Per-event allocated versus spent figures."""

    event_id: str
    name: str
    enabled: bool
    allocated: Decimal
    spent: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.allocated - self.spent

    @property
    def overspent(self) -> bool:
        return self.spent > self.allocated
