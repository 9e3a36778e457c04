"""Advisory notifications raised by budget activity."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Sequence

from .models import utcnow


class NotificationType(str, Enum):
    OVER_BUDGET = "over_budget"
    EVENT_OVERSPENT = "event_overspent"
    PAYMENT_REMINDER = "payment_reminder"
    OTHER = "other"


@dataclass(slots=True)
class Notification:
    """An alert waiting to be shown or shared with the committee."""

    class_id: str
    type: NotificationType
    subject: str
    body: str
    metadata: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> Dict[str, str]:
        payload = {
            "class_id": self.class_id,
            "type": self.type.value,
            "subject": self.subject,
            "body": self.body,
            "created_at": self.created_at.isoformat(),
        }
        payload.update(self.metadata)
        return payload


class NotificationCenter:
    """In-memory alert inbox."""

    def __init__(self) -> None:
        self._queue: List[Notification] = []
        self._sent: List[Notification] = []

    def queue(self, notification: Notification) -> None:
        self._queue.append(notification)

    def pending(self, *, notification_type: NotificationType | None = None) -> Sequence[Notification]:
        if notification_type is None:
            return tuple(self._queue)
        return tuple(item for item in self._queue if item.type is notification_type)

    def pop_all(self) -> Sequence[Notification]:
        pending = tuple(self._queue)
        self._queue.clear()
        self._sent.extend(pending)
        return pending

    def history(self) -> Sequence[Notification]:
        return tuple(self._sent)


__all__ = ["Notification", "NotificationCenter", "NotificationType"]
