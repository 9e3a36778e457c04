from datetime import datetime, timezone
from decimal import Decimal

import pytest

from classbudget.collection import CollectionHealth, CollectionLedger
from classbudget.exceptions import InvalidAmountError, NotFoundError
from classbudget.models import ClassBudgetConfig, PaymentStatus


def make_ledger(children: int = 5, amount="200") -> CollectionLedger:
    config = ClassBudgetConfig(amount_per_child=amount, children_count=children)
    ledger = CollectionLedger(config, clock=lambda: datetime(2024, 9, 1, tzinfo=timezone.utc))
    ledger.sync_roster([f"kid-{index}" for index in range(children)])
    return ledger


def test_sync_roster_adds_and_drops_rows() -> None:
    ledger = make_ledger(3)
    ledger.mark_paid("kid-0")

    added, removed = ledger.sync_roster(["kid-0", "kid-2", "kid-9"])

    assert added == ("kid-9",)
    assert removed == ("kid-1",)
    assert ledger.get_record("kid-0").is_paid
    assert ledger.get_record("kid-9").status is PaymentStatus.UNPAID
    assert ledger.registered_children() == 3


def test_mark_paid_uses_amount_per_child_by_default() -> None:
    ledger = make_ledger()

    record = ledger.mark_paid("kid-1")
    custom = ledger.mark_paid("kid-2", "150")

    assert record.amount == Decimal("200.00")
    assert record.paid_at == datetime(2024, 9, 1, tzinfo=timezone.utc)
    assert custom.amount == Decimal("150.00")
    assert ledger.collected() == Decimal("350.00")

    with pytest.raises(NotFoundError):
        ledger.mark_paid("stranger")
    with pytest.raises(InvalidAmountError):
        ledger.mark_paid("kid-3", "-1")
    assert ledger.collected() == Decimal("350.00")


def test_mark_paid_then_unpaid_restores_collected() -> None:
    ledger = make_ledger()
    ledger.mark_paid("kid-0")
    before = ledger.collected()

    ledger.mark_paid("kid-4")
    record = ledger.mark_unpaid("kid-4")

    assert ledger.collected() == before
    assert record.amount is None
    assert record.paid_at is None


def test_bulk_payment_is_all_or_nothing() -> None:
    ledger = make_ledger()

    with pytest.raises(NotFoundError):
        ledger.mark_many_paid(["kid-0", "ghost", "kid-1"])
    assert ledger.paid_records() == ()

    records = ledger.mark_many_paid(["kid-0", "kid-1"])
    assert [record.child_id for record in records] == ["kid-0", "kid-1"]
    assert ledger.collected() == Decimal("400.00")


def test_bulk_unpaid_is_all_or_nothing() -> None:
    ledger = make_ledger()
    ledger.mark_many_paid(["kid-0", "kid-1", "kid-2"])

    with pytest.raises(NotFoundError):
        ledger.mark_many_unpaid(["kid-0", "ghost"])
    assert ledger.collected() == Decimal("600.00")

    records = ledger.mark_many_unpaid(["kid-0", "kid-1"])
    assert [record.status for record in records] == [PaymentStatus.UNPAID, PaymentStatus.UNPAID]
    assert ledger.collected() == Decimal("200.00")
    assert ledger.unpaid_child_ids() == ("kid-0", "kid-1", "kid-3", "kid-4")


def test_marking_paid_twice_refreshes_timestamp_only() -> None:
    config = ClassBudgetConfig(amount_per_child="200", children_count=2)
    times = iter([datetime(2024, 9, 1, tzinfo=timezone.utc), datetime(2024, 9, 8, tzinfo=timezone.utc)])
    ledger = CollectionLedger(config, clock=lambda: next(times))
    ledger.sync_roster(["kid-0", "kid-1"])

    first = ledger.mark_paid("kid-0").paid_at
    record = ledger.mark_paid("kid-0")

    assert first == datetime(2024, 9, 1, tzinfo=timezone.utc)
    assert record.paid_at == datetime(2024, 9, 8, tzinfo=timezone.utc)
    assert record.status is PaymentStatus.PAID
    assert ledger.collected() == Decimal("200.00")
    assert len(ledger.paid_records()) == 1


def test_summary_counts_and_health() -> None:
    config = ClassBudgetConfig(amount_per_child="100", children_count=10)
    ledger = CollectionLedger(config)
    ledger.sync_roster([f"kid-{index}" for index in range(8)])
    ledger.mark_many_paid([f"kid-{index}" for index in range(4)])

    summary = ledger.summary()

    assert summary.expected_children == 10
    assert summary.registered_children == 8
    assert summary.paid_count == 4
    assert summary.unpaid_count == 4
    assert summary.not_registered == 2
    assert summary.collected == Decimal("400.00")
    assert summary.expected_total == Decimal("800.00")
    assert summary.progress_percentage() == Decimal("50")
    assert summary.health is CollectionHealth.ATTENTION
    assert ledger.unpaid_child_ids() == ("kid-4", "kid-5", "kid-6", "kid-7")


def test_health_bands() -> None:
    assert CollectionHealth.for_percentage(Decimal("80")) is CollectionHealth.GOOD
    assert CollectionHealth.for_percentage(Decimal("79")) is CollectionHealth.ATTENTION
    assert CollectionHealth.for_percentage(Decimal("49")) is CollectionHealth.FOLLOW_UP


def test_not_registered_never_negative() -> None:
    ledger = make_ledger(4)

    assert ledger.not_registered(2) == 0
    assert ledger.not_registered(6) == 2
    assert ledger.drop_child("kid-0") is not None
    assert ledger.drop_child("kid-0") is None
