"""Audit trail of committee actions on the ledgers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .models import utcnow


@dataclass(slots=True)
class AuditEvent:
    """Represents one auditable committee action."""

    actor: str
    action: str
    target: str
    timestamp: datetime = field(default_factory=utcnow)
    details: Dict[str, Any] = field(default_factory=dict)


class AuditLog:
    """Collect audit events, e.g. who marked a household as paid."""

    def __init__(self) -> None:
        self._entries: list[AuditEvent] = []

    def record(
        self,
        actor: str,
        action: str,
        target: str,
        *,
        details: Optional[dict] = None,
        timestamp: Optional[datetime] = None,
    ) -> AuditEvent:
        event = AuditEvent(
            actor=actor,
            action=action,
            target=target,
            timestamp=timestamp or utcnow(),
            details=dict(details or {}),
        )
        self._entries.append(event)
        return event

    def entries(self, *, action: str | None = None, target: str | None = None) -> tuple[AuditEvent, ...]:
        records = self._entries
        if action is not None:
            records = [entry for entry in records if entry.action == action]
        if target is not None:
            records = [entry for entry in records if entry.target == target]
        return tuple(records)

    def latest(self, *, target: str | None = None) -> AuditEvent | None:
        matching = self.entries(target=target)
        return matching[-1] if matching else None


__all__ = ["AuditEvent", "AuditLog"]
