"""First-time class setup progress as an explicit value object."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class SetupTask(str, Enum):
    """Checklist items, in the order they are presented."""

    BASIC_INFO = "basic_info"
    UPLOAD_CHILDREN = "upload_children"
    PARENT_FORM_LINKS = "parent_form_links"
    ADD_STAFF = "add_staff"
    SETUP_BUDGET = "setup_budget"
    INVITE_PARENTS = "invite_parents"
    REQUEST_PAYMENT = "request_payment"


class TaskStatus(str, Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"


@dataclass(frozen=True, slots=True)
class SetupState:
    """Setup checklist progress for one class.

    Instances are immutable; :meth:`complete` and :meth:`skip` return a new
    state. Skipping a task counts as completing it.
    """

    estimated_children: int = 0
    children_added: int = 0
    staff_added: int = 0
    completed: FrozenSet[SetupTask] = field(
        default_factory=lambda: frozenset({SetupTask.BASIC_INFO})
    )
    payment_link: Optional[str] = None

    def status(self, task: SetupTask) -> TaskStatus:
        task = SetupTask(task)
        if task is SetupTask.BASIC_INFO:
            return TaskStatus.COMPLETED
        if task is SetupTask.UPLOAD_CHILDREN:
            if task in self.completed or (
                self.children_added > 0 and self.children_added >= self.estimated_children
            ):
                return TaskStatus.COMPLETED
            return TaskStatus.IN_PROGRESS if self.children_added > 0 else TaskStatus.PENDING
        if task in self.completed:
            return TaskStatus.COMPLETED
        if task is SetupTask.ADD_STAFF and self.staff_added > 0:
            return TaskStatus.IN_PROGRESS
        return TaskStatus.PENDING

    def statuses(self) -> Tuple[Tuple[SetupTask, TaskStatus], ...]:
        return tuple((task, self.status(task)) for task in SetupTask)

    def progress_percentage(self) -> int:
        done = sum(1 for _, status in self.statuses() if status is TaskStatus.COMPLETED)
        return round(done * 100 / len(SetupTask))

    @property
    def is_complete(self) -> bool:
        return all(status is TaskStatus.COMPLETED for _, status in self.statuses())

    def complete(self, task: SetupTask) -> "SetupState":
        return replace(self, completed=self.completed | {SetupTask(task)})

    def skip(self, task: SetupTask) -> "SetupState":
        return self.complete(task)

    def with_roster(self, *, children_added: int, staff_added: int) -> "SetupState":
        return replace(self, children_added=children_added, staff_added=staff_added)

    def with_payment_link(self, link: str) -> "SetupState":
        return replace(self, payment_link=link.strip() or None)

    # Serialisation ----------------------------------------------------
    def to_json(self) -> str:
        payload: Dict[str, object] = {
            "estimated_children": self.estimated_children,
            "children_added": self.children_added,
            "staff_added": self.staff_added,
            "completed": sorted(task.value for task in self.completed),
            "payment_link": self.payment_link,
        }
        return json.dumps(payload, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "SetupState":
        data = json.loads(raw)
        completed = frozenset(SetupTask(value) for value in data.get("completed", ()))
        return cls(
            estimated_children=int(data.get("estimated_children", 0)),
            children_added=int(data.get("children_added", 0)),
            staff_added=int(data.get("staff_added", 0)),
            completed=completed | {SetupTask.BASIC_INFO},
            payment_link=data.get("payment_link"),
        )


__all__ = ["SetupState", "SetupTask", "TaskStatus"]
