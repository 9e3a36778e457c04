"""Allocation plan: the class total and its per-event budget slots."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple
from uuid import uuid4

from .catalog import CUSTOM_EVENT_ICON, CUSTOM_EVENT_PREFIX, EVENT_TEMPLATES
from .exceptions import DuplicateEventError, EmptyNameError, NotCustomError, NotFoundError
from .models import ClassBudgetConfig, EventAllocation, EventKind
from .money import ZERO, AmountLike, to_amount, to_count


class AllocationPlan:
    """Holds the class budget configuration and the set of event allocations.

    Every mutator validates all of its arguments before touching state, so a
    rejected call leaves the plan unchanged.
    """

    __slots__ = ("_config", "_events")

    def __init__(
        self,
        config: ClassBudgetConfig | None = None,
        *,
        events: Iterable[EventAllocation] = (),
    ) -> None:
        self._config = config or ClassBudgetConfig()
        self._events: Dict[str, EventAllocation] = {}
        for allocation in events:
            self.add_event(allocation)

    @classmethod
    def from_catalog(cls, config: ClassBudgetConfig | None = None) -> "AllocationPlan":
        """Create a plan pre-populated with the built-in (disabled) events."""

        return cls(config, events=(template.instantiate() for template in EVENT_TEMPLATES))

    # ------------------------------------------------------------------
    # Budget totals
    # ------------------------------------------------------------------
    @property
    def config(self) -> ClassBudgetConfig:
        return self._config

    @property
    def total_budget(self) -> Decimal:
        return self._config.total_budget

    def set_total(self, amount_per_child: AmountLike, children_count: int) -> Decimal:
        """Set ``total_budget = amount_per_child * children_count``."""

        return self._config.set_per_child(amount_per_child, children_count)

    def set_fixed_total(self, total: AmountLike) -> Decimal:
        return self._config.set_fixed_total(total)

    def set_children_count(self, children_count: int) -> None:
        self._config.set_children_count(children_count)

    def set_staff_count(self, staff_count: int) -> None:
        self._config.set_staff_count(staff_count)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    @property
    def events(self) -> Tuple[EventAllocation, ...]:
        return tuple(self._events.values())

    def enabled_events(self) -> Tuple[EventAllocation, ...]:
        return tuple(event for event in self._events.values() if event.enabled)

    def custom_events(self) -> Tuple[EventAllocation, ...]:
        return tuple(event for event in self._events.values() if event.is_custom)

    def has_event(self, event_id: str) -> bool:
        return event_id in self._events

    def get_event(self, event_id: str) -> EventAllocation:
        try:
            return self._events[event_id]
        except KeyError as exc:
            raise NotFoundError(f"Event '{event_id}' does not exist.") from exc

    def add_event(self, allocation: EventAllocation) -> EventAllocation:
        """Register an existing allocation, e.g. one loaded from storage."""

        if allocation.event_id in self._events:
            raise DuplicateEventError(f"Event '{allocation.event_id}' already exists.")
        self._events[allocation.event_id] = allocation
        return allocation

    def toggle_event(self, event_id: str, enabled: bool) -> EventAllocation:
        """Enable or disable an event; per-unit amounts are kept either way."""

        event = self.get_event(event_id)
        event.enabled = bool(enabled)
        return event

    def set_event_amounts(
        self,
        event_id: str,
        amount_per_kid: AmountLike,
        amount_per_staff: AmountLike = 0,
    ) -> EventAllocation:
        event = self.get_event(event_id)
        per_kid = to_amount(amount_per_kid)
        per_staff = to_amount(amount_per_staff)
        event.amount_per_kid = per_kid
        event.amount_per_staff = per_staff
        return event

    def set_event_headcount(
        self,
        event_id: str,
        kids_count: Optional[int] = None,
        staff_count: Optional[int] = None,
    ) -> EventAllocation:
        """Override the headcounts used for one event only.

        Arguments left as ``None`` keep their current value.
        """

        event = self.get_event(event_id)
        kids = to_count(kids_count, label="kids_count") if kids_count is not None else None
        staff = to_count(staff_count, label="staff_count") if staff_count is not None else None
        if kids is not None:
            event.kids_count = kids
        if staff is not None:
            event.staff_count = staff
        return event

    def reset_event_headcount(self, event_id: str) -> EventAllocation:
        event = self.get_event(event_id)
        event.kids_count = None
        event.staff_count = None
        return event

    def set_event_paid(self, event_id: str, is_paid: bool = True) -> EventAllocation:
        event = self.get_event(event_id)
        event.is_paid = bool(is_paid)
        return event

    def set_event_date(self, event_id: str, event_date: Optional[date]) -> EventAllocation:
        event = self.get_event(event_id)
        event.event_date = event_date
        return event

    def add_custom_event(self, name: str, *, event_date: Optional[date] = None) -> EventAllocation:
        """Create an enabled custom event with zero amounts."""

        cleaned = (name or "").strip()
        if not cleaned:
            raise EmptyNameError("Event name must not be blank.")
        event_id = f"{CUSTOM_EVENT_PREFIX}{uuid4().hex[:12]}"
        allocation = EventAllocation(
            event_id=event_id,
            name=cleaned,
            enabled=True,
            is_custom=True,
            kind=EventKind.CUSTOM,
            icon=CUSTOM_EVENT_ICON,
            event_date=event_date,
        )
        return self.add_event(allocation)

    def remove_custom_event(self, event_id: str) -> EventAllocation:
        """Remove a user-added event. Built-in events can only be disabled."""

        event = self.get_event(event_id)
        if not event.is_custom:
            raise NotCustomError(f"Event '{event_id}' is built in and cannot be removed.")
        del self._events[event_id]
        return event

    # ------------------------------------------------------------------
    # Derived figures
    # ------------------------------------------------------------------
    def kids_count_for(self, event: EventAllocation) -> int:
        return event.effective_kids(self._config.children_count)

    def staff_count_for(self, event: EventAllocation) -> int:
        return event.effective_staff(self._config.staff_count)

    def event_allocated(self, event_id: str) -> Decimal:
        event = self.get_event(event_id)
        return event.allocated_total(self._config.children_count, self._config.staff_count)

    def allocated_total(self) -> Decimal:
        """Sum of ``allocated_total`` over all enabled events."""

        children = self._config.children_count
        staff = self._config.staff_count
        return sum(
            (event.allocated_total(children, staff) for event in self._events.values()),
            ZERO,
        )

    def allocation_remaining(self) -> Decimal:
        return self.total_budget - self.allocated_total()


__all__ = ["AllocationPlan"]
