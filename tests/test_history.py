from datetime import datetime, timezone

import pytest

from catalog import Cost
from history import HistoryLedger, PullResult, Statistics
from rarity import Rarity

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_result(index: int, rarity: Rarity = Rarity.COMMON) -> PullResult:
    return PullResult(
        id=f"pull_{index}",
        rarity=rarity,
        item_id="basic_breathing",
        item_name="Basic Breathing Method",
        category="Qi Technique",
        pool_id="standard",
        timestamp=NOW,
    )


def test_ledger_keeps_most_recent_entries_in_order():
    ledger = HistoryLedger()
    for index in range(1500):
        ledger.append(make_result(index))

    entries = ledger.entries()
    assert len(ledger) == 1000
    assert [e.id for e in entries] == [f"pull_{i}" for i in range(500, 1500)]


def test_ledger_recent_and_breakdown():
    ledger = HistoryLedger(limit=10)
    ledger.extend(make_result(i, Rarity.RARE if i % 2 else Rarity.COMMON) for i in range(6))

    assert [e.id for e in ledger.recent(2)] == ["pull_4", "pull_5"]
    assert ledger.recent(0) == []
    breakdown = ledger.rarity_breakdown(4)
    assert breakdown[Rarity.RARE] == 2
    assert breakdown[Rarity.COMMON] == 2
    assert breakdown[Rarity.MYTHICAL] == 0


def test_pull_result_is_immutable():
    result = make_result(1)
    with pytest.raises(ValueError):
        result.rarity = Rarity.EPIC


def test_statistics_defaults():
    stats = Statistics()
    assert stats.total_pulls == 0
    assert stats.luck_score == 100
    assert stats.average_rarity_level == 0


def test_statistics_average_and_luck():
    stats = Statistics()
    for rarity in [Rarity.COMMON, Rarity.COMMON, Rarity.RARE, Rarity.LEGENDARY]:
        stats.record_pull(rarity, base_legendary_rate=0.25)

    assert stats.total_pulls == 4
    assert stats.obtained_by_rarity == {Rarity.COMMON: 2, Rarity.RARE: 1, Rarity.LEGENDARY: 1}
    assert stats.average_rarity_level == pytest.approx((1 + 1 + 3 + 5) / 4)
    # One legendary observed against one expected
    assert stats.luck_score == 100

    stats.record_pull(Rarity.MYTHICAL, base_legendary_rate=0.25)
    assert stats.luck_score == round(2 / (5 * 0.25) * 100)


def test_statistics_spend():
    stats = Statistics()
    stats.record_spend(Cost(primary=475))
    stats.record_spend(Cost(secondary=675))
    assert stats.spend_by_currency == Cost(primary=475, secondary=675)
