from datetime import timedelta

import pytest
from conftest import RICH_PLAYER, ScriptedRandom

from catalog import Cost, load_catalog
from draw import SeededRandom
from engine import (
    EVENT_BATCH_COMPLETED,
    EVENT_POOL_SWITCHED,
    EVENT_PULL_COMPLETED,
    EVENT_PULL_RARE,
    GachaEngine,
    batch_cost,
)
from errors import ErrorKind, InvalidArgument, Shortfall
from pity import PityState
from rarity import Rarity
from store import MemoryStore


def with_pity(pool_id: str, epic: int, legendary: int) -> dict:
    return {
        **RICH_PLAYER,
        "gacha": {
            "current_pool": "standard",
            "pity": {pool_id: {"epic_misses": epic, "legendary_misses": legendary}},
        },
    }


def update_sources(engine) -> list[str]:
    return [meta["source"] for _, meta in engine.store.update_log]


# ----------------------------------------------------------------------
# Cost
# ----------------------------------------------------------------------


def test_bulk_discount():
    unit = Cost(primary=100)
    assert batch_cost(unit, 1) == Cost(primary=100)
    assert batch_cost(unit, 5) == Cost(primary=475)
    assert batch_cost(unit, 10) == Cost(primary=900)
    assert batch_cost(Cost(secondary=75), 10) == Cost(secondary=675)


def test_bulk_discount_floors_each_currency():
    assert batch_cost(Cost(primary=33, secondary=7), 5) == Cost(primary=156, secondary=33)


def test_batch_cost_rejects_other_counts():
    with pytest.raises(InvalidArgument):
        batch_cost(Cost(primary=100), 3)


def test_ten_pull_deducts_discounted_cost(engine):
    outcome = engine.pull_batch(10)
    assert outcome.ok
    assert outcome.total_cost == Cost(primary=900)
    assert engine.balances() == (100_000 - 900, 100_000)
    assert engine.get_statistics().spend_by_currency == Cost(primary=900)


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------


def test_insufficient_resources_changes_nothing(make_engine):
    engine = make_engine({"player": {"jade": 50, "spiritCrystals": 0}})
    before = engine.store.snapshot()

    outcome = engine.pull_single()

    assert not outcome.ok
    assert outcome.error.kind == ErrorKind.INSUFFICIENT_RESOURCES
    assert outcome.error.shortfall == Shortfall(primary=50, secondary=0)
    assert engine.store.snapshot() == before
    assert engine.store.update_log == []
    assert engine.history() == []
    assert engine.pity_for("standard") == PityState()


def test_shortfall_reported_for_secondary_currency(make_engine):
    engine = make_engine({"player": {"jade": 0, "spiritCrystals": 400}})
    outcome = engine.pull_batch(10, "premium")
    assert outcome.error.kind == ErrorKind.INSUFFICIENT_RESOURCES
    assert outcome.error.shortfall == Shortfall(primary=0, secondary=50)


@pytest.mark.parametrize("count", [0, 2, 3, 11, -1])
def test_invalid_count(engine, count):
    outcome = engine.pull_batch(count)
    assert outcome.status == "error"
    assert outcome.error.kind == ErrorKind.INVALID_ARGUMENT
    assert engine.store.update_log == []


def test_unknown_pool(engine):
    outcome = engine.pull_single("no_such_pool")
    assert outcome.error.kind == ErrorKind.INVALID_ARGUMENT
    assert "no_such_pool" in outcome.error.message


def test_event_pool_availability_follows_end_time(engine, clock):
    assert engine.pull_single("event_limited").error.kind == ErrorKind.POOL_UNAVAILABLE
    assert "event_limited" not in [p.id for p in engine.get_available_pools()]

    assert engine.set_event_end_time("event_limited", clock.now + timedelta(days=1)).ok
    assert engine.pull_single("event_limited").ok
    assert "event_limited" in [p.id for p in engine.get_available_pools()]

    clock.advance(timedelta(days=2))
    assert engine.pull_single("event_limited").error.kind == ErrorKind.POOL_UNAVAILABLE


def test_set_event_end_time_rejects_permanent_pool(engine, clock):
    outcome = engine.set_event_end_time("standard", clock.now)
    assert outcome.error.kind == ErrorKind.INVALID_ARGUMENT


def test_uninitialized_engine_raises(catalog, config):
    engine = GachaEngine(
        catalog=catalog,
        store=MemoryStore(RICH_PLAYER),
        events=None,
        rng=ScriptedRandom(),
        config=config,
    )
    with pytest.raises(RuntimeError):
        engine.pull_single()


# ----------------------------------------------------------------------
# Batches and pity
# ----------------------------------------------------------------------


def test_ten_pull_guarantees_rare_on_last_pull(engine):
    outcome = engine.pull_batch(10)

    rarities = [r.rarity for r in outcome.results]
    assert rarities[:9] == [Rarity.COMMON] * 9
    assert rarities[9] == Rarity.RARE
    assert outcome.guaranteed_rare_used
    assert outcome.results[9].guaranteed
    assert [r.batch_index for r in outcome.results] == list(range(10))


def test_ten_pull_skips_guarantee_when_rare_already_drawn(make_engine):
    # Second draw roll lands in Rare; every other roll is 0.0
    rng = ScriptedRandom([0.0, 0.0, 0.85, 0.0])
    engine = make_engine(rng=rng)

    outcome = engine.pull_batch(10)
    assert outcome.results[1].rarity == Rarity.RARE
    assert not outcome.guaranteed_rare_used
    assert outcome.results[9].rarity == Rarity.COMMON


def test_batch_threads_pity_between_draws(engine):
    engine.pull_batch(10)
    assert engine.pity_for("standard") == PityState(epic_misses=10, legendary_misses=10)
    assert engine.pity_for("premium") == PityState()


def test_hard_pity_triggers_inside_batch(make_engine):
    engine = make_engine(with_pity("standard", 88, 88))

    outcome = engine.pull_batch(5)

    assert [r.rarity for r in outcome.results] == [
        Rarity.COMMON,
        Rarity.COMMON,
        Rarity.LEGENDARY,
        Rarity.COMMON,
        Rarity.COMMON,
    ]
    assert engine.pity_for("standard") == PityState(epic_misses=2, legendary_misses=2)
    assert len(engine.events.payloads(EVENT_PULL_RARE)) == 1
    assert engine.get_statistics().luck_score == 2000


def test_hard_legendary_pity_from_saved_state(make_engine):
    engine = make_engine(with_pity("standard", 0, 180))
    outcome = engine.pull_single()
    assert outcome.results[0].rarity == Rarity.LEGENDARY
    assert engine.pity_for("standard") == PityState()


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_event_pool_floor(make_engine, clock, seed):
    engine = make_engine(rng=SeededRandom(seed))
    engine.set_event_end_time("event_limited", clock.now + timedelta(days=14))

    outcome = engine.pull_batch(10, "event_limited")
    assert outcome.ok
    assert all(r.rarity.at_least(Rarity.EPIC) for r in outcome.results)
    assert all(r.item_id != "basic_breathing" for r in outcome.results)
    assert engine.balances() == (100_000, 100_000 - 675)


# ----------------------------------------------------------------------
# Events and concurrency
# ----------------------------------------------------------------------


def test_single_pull_events(engine):
    engine.pull_single()
    assert engine.events.names()[-1] == EVENT_PULL_COMPLETED
    payload = engine.events.payloads(EVENT_PULL_COMPLETED)[0]
    assert payload["pool"] == "standard"
    assert payload["cost"] == Cost(primary=100)
    assert engine.events.payloads(EVENT_BATCH_COMPLETED) == []


def test_batch_events(engine):
    engine.pull_batch(10)
    payload = engine.events.payloads(EVENT_BATCH_COMPLETED)[0]
    assert payload["count"] == 10
    assert payload["guaranteedRareUsed"] is True
    assert len(payload["results"]) == 10
    assert engine.events.payloads(EVENT_PULL_COMPLETED) == []


def test_reentrant_pull_is_rejected_as_busy(engine):
    nested = []
    engine.events.on(EVENT_PULL_COMPLETED, lambda _: nested.append(engine.pull_single()))

    outcome = engine.pull_single()

    assert outcome.ok
    assert len(nested) == 1
    assert nested[0].error.kind == ErrorKind.BUSY
    assert not engine.is_busy
    assert len(engine.history()) == 1


def test_failed_batch_refunds_and_reraises(engine, monkeypatch):
    before = engine.balances()

    def explode(pool, rarity):
        raise KeyError("selector broke")

    monkeypatch.setattr(engine.selector, "pick", explode)

    with pytest.raises(KeyError):
        engine.pull_batch(10)

    assert engine.balances() == before
    assert engine.pity_for("standard") == PityState()
    assert engine.history() == []
    assert update_sources(engine) == ["gacha:spend", "gacha:refund"]
    assert not engine.is_busy


def test_successful_pull_uses_spend_then_save(engine):
    engine.pull_single()
    assert update_sources(engine) == ["gacha:spend", "gacha:save"]


# ----------------------------------------------------------------------
# Pools
# ----------------------------------------------------------------------


def test_switch_pool(engine):
    outcome = engine.switch_pool("premium")

    assert outcome.ok
    assert engine.current_pool == "premium"
    payload = engine.events.payloads(EVENT_POOL_SWITCHED)[0]
    assert payload["pool"] == "premium"
    assert payload["info"].id == "premium"

    engine.pull_single()
    assert engine.history()[-1].pool_id == "premium"


def test_switch_to_unavailable_pool_fails(engine):
    outcome = engine.switch_pool("event_limited")
    assert outcome.error.kind == ErrorKind.POOL_UNAVAILABLE
    assert engine.current_pool == "standard"


def test_pool_info_next_guaranteed(engine):
    engine.pull_batch(10)
    info = engine.get_pool_info("standard")

    assert info.current_pity == PityState(epic_misses=10, legendary_misses=10)
    assert info.next_guaranteed.next_epic == 80
    assert info.next_guaranteed.next_legendary == 170
    assert info.rates.is_normalized()
    assert len(info.available_items) == len(engine.catalog.items)


def test_pool_info_unknown_pool(engine):
    assert engine.get_pool_info("missing") is None


# ----------------------------------------------------------------------
# Persistence and reporting
# ----------------------------------------------------------------------


def test_state_survives_reload(engine, catalog, clock, config):
    engine.pull_batch(10)
    engine.switch_pool("premium")
    engine.pull_batch(5)

    reloaded = GachaEngine(
        catalog=catalog,
        store=MemoryStore(engine.store.snapshot()),
        events=engine.events,
        rng=ScriptedRandom(),
        clock=clock,
        config=config,
    )
    reloaded.initialize()

    assert reloaded.current_pool == "premium"
    assert reloaded.pity_for("standard") == engine.pity_for("standard")
    assert reloaded.pity_for("premium") == engine.pity_for("premium")
    assert [r.id for r in reloaded.history()] == [r.id for r in engine.history()]
    assert reloaded.get_statistics().total_pulls == 15
    assert reloaded.balances() == engine.balances()


def test_history_is_bounded(make_engine):
    engine = make_engine({"player": {"jade": 1_000_000, "spiritCrystals": 0}})
    for _ in range(150):
        assert engine.pull_batch(10).ok

    history = engine.history()
    assert len(history) == 1000
    assert engine.get_statistics().total_pulls == 1500
    assert len(engine.get_statistics().recent_pulls) == 100
    assert len(engine.get_statistics().pull_history) == 50


def test_statistics_report(engine):
    engine.pull_batch(10)
    stats = engine.get_statistics()

    assert stats.obtained_by_rarity == {Rarity.COMMON: 9, Rarity.RARE: 1}
    assert stats.average_rarity_level == pytest.approx(1.2)
    assert stats.luck_score == 0
    assert stats.rarity_breakdown[Rarity.COMMON] == 9
    assert stats.current_pity["standard"] == PityState(epic_misses=10, legendary_misses=10)


def test_simulate_pulls_leaves_state_untouched(engine):
    before = engine.store.snapshot()

    report = engine.simulate_pulls(100)

    assert report.ok
    assert report.total == 100
    assert report.rarities[Rarity.COMMON] == 100
    assert report.percentages[Rarity.COMMON] == 100.0
    assert engine.store.snapshot() == before
    assert engine.history() == []


def test_simulate_pulls_with_seeded_rng(engine):
    report = engine.simulate_pulls(500, "premium", rng=SeededRandom(3))
    assert sum(report.rarities.values()) == 500


def test_simulate_pulls_rejects_bad_count(engine):
    assert engine.simulate_pulls(0).error.kind == ErrorKind.INVALID_ARGUMENT


def test_pool_with_naive_expiry_can_be_pulled(make_engine, catalog):
    raw = catalog.model_dump(mode="json")
    raw["pools"][4]["expires_at"] = "2099-01-01T00:00:00"
    engine = make_engine(catalog_override=load_catalog(raw))

    assert "event_limited" in [p.id for p in engine.get_available_pools()]
    assert engine.switch_pool("event_limited").ok
    outcome = engine.pull_single("event_limited")
    assert outcome.ok
    assert outcome.results[0].rarity.at_least(Rarity.EPIC)


def test_naive_event_end_time_is_read_as_utc(engine, clock):
    naive_end = (clock.now + timedelta(hours=1)).replace(tzinfo=None)
    assert engine.set_event_end_time("event_limited", naive_end).ok
    assert engine.pull_single("event_limited").ok

    clock.advance(timedelta(hours=2))
    assert engine.pull_single("event_limited").error.kind == ErrorKind.POOL_UNAVAILABLE


def test_naive_end_time_in_saved_state(make_engine, clock):
    end = (clock.now + timedelta(days=1)).replace(tzinfo=None).isoformat()
    engine = make_engine({**RICH_PLAYER, "gacha": {"event_end_times": {"event_limited": end}}})
    assert engine.pull_single("event_limited").ok
