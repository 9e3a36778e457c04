"""Minimal roster value fed into the ledgers.

Roster storage and spreadsheet import live elsewhere; the budget engine only
needs identities, display names and headcounts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple


@dataclass(frozen=True, slots=True)
class RosterChild:
    child_id: str
    name: str
    parent_names: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StaffMember:
    name: str
    role: str = ""


@dataclass(frozen=True, slots=True)
class Roster:
    children: Tuple[RosterChild, ...] = ()
    staff: Tuple[StaffMember, ...] = ()
    _by_id: Dict[str, RosterChild] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        children = tuple(self.children)
        staff = tuple(self.staff)
        by_id: Dict[str, RosterChild] = {}
        for child in children:
            if child.child_id in by_id:
                raise ValueError(f"Duplicate child id '{child.child_id}' in roster.")
            by_id[child.child_id] = child
        object.__setattr__(self, "children", children)
        object.__setattr__(self, "staff", staff)
        object.__setattr__(self, "_by_id", by_id)

    @classmethod
    def of(cls, children: Iterable[RosterChild], staff: Iterable[StaffMember] = ()) -> "Roster":
        return cls(children=tuple(children), staff=tuple(staff))

    @property
    def children_count(self) -> int:
        return len(self.children)

    @property
    def staff_count(self) -> int:
        return len(self.staff)

    def child_ids(self) -> Tuple[str, ...]:
        return tuple(child.child_id for child in self.children)

    def find(self, child_id: str) -> RosterChild | None:
        return self._by_id.get(child_id)

    def display_name(self, child_id: str) -> str:
        """Child name with parent names in brackets, for reminder lists."""

        child = self._by_id.get(child_id)
        if child is None:
            return child_id
        if child.parent_names:
            return f"{child.name} ({', '.join(child.parent_names)})"
        return child.name


__all__ = ["Roster", "RosterChild", "StaffMember"]
