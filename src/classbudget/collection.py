"""Collection ledger: which households have paid and how much."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from .exceptions import NotFoundError
from .models import ClassBudgetConfig, PaymentRecord, PaymentStatus, utcnow
from .money import ZERO, AmountLike, to_amount, to_count


class CollectionHealth(str, Enum):
    """Traffic-light band for the share of households that paid."""

    GOOD = "good"
    ATTENTION = "attention"
    FOLLOW_UP = "follow_up"

    @classmethod
    def for_percentage(cls, percentage: Decimal) -> "CollectionHealth":
        if percentage >= 80:
            return cls.GOOD
        if percentage >= 50:
            return cls.ATTENTION
        return cls.FOLLOW_UP


@dataclass(frozen=True, slots=True)
class CollectionSummary:
    """Snapshot used by the payment tracking card."""

    expected_children: int
    registered_children: int
    paid_count: int
    unpaid_count: int
    not_registered: int
    collected: Decimal
    expected_total: Decimal

    def progress_percentage(self) -> Decimal:
        if self.registered_children == 0:
            return Decimal("0")
        ratio = Decimal(self.paid_count) / Decimal(self.registered_children) * Decimal(100)
        return ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    @property
    def health(self) -> CollectionHealth:
        return CollectionHealth.for_percentage(self.progress_percentage())


class CollectionLedger:
    """Track per-child payment status for one class.

    Records exist only for children on the roster; :meth:`sync_roster` keeps
    the two aligned. ``amount_per_child`` is read from the shared
    :class:`ClassBudgetConfig` at the moment a payment is marked.
    """

    __slots__ = ("_config", "_records", "_clock")

    def __init__(
        self,
        config: ClassBudgetConfig,
        *,
        records: Iterable[PaymentRecord] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config
        self._clock = clock
        self._records: Dict[str, PaymentRecord] = {}
        for record in records:
            self._records[record.child_id] = record

    @property
    def records(self) -> Tuple[PaymentRecord, ...]:
        return tuple(self._records.values())

    def registered_children(self) -> int:
        return len(self._records)

    def has_child(self, child_id: str) -> bool:
        return child_id in self._records

    def get_record(self, child_id: str) -> PaymentRecord:
        try:
            return self._records[child_id]
        except KeyError as exc:
            raise NotFoundError(f"Child '{child_id}' is not registered.") from exc

    # ------------------------------------------------------------------
    # Roster alignment
    # ------------------------------------------------------------------
    def register_child(self, child_id: str) -> PaymentRecord:
        """Add an unpaid row for ``child_id``; existing rows are returned as is."""

        record = self._records.get(child_id)
        if record is None:
            record = PaymentRecord(child_id=child_id)
            self._records[child_id] = record
        return record

    def drop_child(self, child_id: str) -> Optional[PaymentRecord]:
        return self._records.pop(child_id, None)

    def sync_roster(self, child_ids: Iterable[str]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        """Align rows with the roster; returns ``(added, removed)`` child ids."""

        wanted = list(dict.fromkeys(child_ids))
        wanted_set = set(wanted)
        removed = tuple(child_id for child_id in self._records if child_id not in wanted_set)
        for child_id in removed:
            del self._records[child_id]
        added = tuple(child_id for child_id in wanted if child_id not in self._records)
        for child_id in added:
            self._records[child_id] = PaymentRecord(child_id=child_id)
        return added, removed

    # ------------------------------------------------------------------
    # Payment transitions
    # ------------------------------------------------------------------
    def mark_paid(self, child_id: str, amount: AmountLike | None = None) -> PaymentRecord:
        """Mark a household as paid; repeating the call refreshes ``paid_at``."""

        record = self.get_record(child_id)
        value = to_amount(amount) if amount is not None else self._config.amount_per_child
        record.mark_paid(value, when=self._clock())
        return record

    def mark_unpaid(self, child_id: str) -> PaymentRecord:
        record = self.get_record(child_id)
        record.mark_unpaid()
        return record

    def _require_registered(self, child_ids: Sequence[str]) -> None:
        missing = [child_id for child_id in child_ids if child_id not in self._records]
        if missing:
            raise NotFoundError(f"Children not registered: {', '.join(missing)}.")

    def mark_many_paid(self, child_ids: Sequence[str]) -> Tuple[PaymentRecord, ...]:
        """Mark several households paid; unknown ids abort the whole batch."""

        self._require_registered(child_ids)
        return tuple(self.mark_paid(child_id) for child_id in child_ids)

    def mark_many_unpaid(self, child_ids: Sequence[str]) -> Tuple[PaymentRecord, ...]:
        """Revert several households to unpaid, all or nothing."""

        self._require_registered(child_ids)
        return tuple(self.mark_unpaid(child_id) for child_id in child_ids)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------
    def paid_records(self) -> Tuple[PaymentRecord, ...]:
        return tuple(record for record in self._records.values() if record.is_paid)

    def unpaid_child_ids(self) -> Tuple[str, ...]:
        return tuple(
            record.child_id
            for record in self._records.values()
            if record.status is PaymentStatus.UNPAID
        )

    def collected(self) -> Decimal:
        """Sum of amounts over paid records; unpaid rows count for nothing."""

        return sum(
            (record.amount or ZERO for record in self._records.values() if record.is_paid),
            ZERO,
        )

    def not_registered(self, expected_children: int | None = None) -> int:
        """Children expected in the class but not yet on the roster."""

        expected = (
            self._config.children_count
            if expected_children is None
            else to_count(expected_children, label="expected_children")
        )
        return max(0, expected - len(self._records))

    def summary(self, expected_children: int | None = None) -> CollectionSummary:
        expected = self._config.children_count if expected_children is None else expected_children
        paid = len(self.paid_records())
        registered = len(self._records)
        return CollectionSummary(
            expected_children=expected,
            registered_children=registered,
            paid_count=paid,
            unpaid_count=registered - paid,
            not_registered=self.not_registered(expected),
            collected=self.collected(),
            expected_total=self._config.amount_per_child * registered,
        )


__all__ = ["CollectionHealth", "CollectionLedger", "CollectionSummary"]
