"""Gacha pull engine."""

import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from catalog import Catalog, Cost, Item, Pool, as_utc
from config import Config, settings as default_settings
from draw import PullExecutor, RandomSource, SeededRandom, sample_rarity
from errors import (
    EngineBusy,
    GachaError,
    InsufficientResources,
    InvalidArgument,
    Outcome,
    PoolUnavailable,
)
from history import HistoryLedger, PullResult, Statistics
from pity import PityState
from rarity import Rarity, RateTable
from rates import RateEngine
from selector import ItemSelector
from store import EventPublisher, GameStateStore

# Cost multiplier per allowed batch size
BULK_DISCOUNTS: dict[int, float] = {1: 1.0, 5: 0.95, 10: 0.9}
GUARANTEED_RARE_BATCH = 10

EVENT_INITIALIZED = "gacha.initialized"
EVENT_PULL_COMPLETED = "pull.completed"
EVENT_PULL_RARE = "pull.rare"
EVENT_BATCH_COMPLETED = "pullBatch.completed"
EVENT_POOL_SWITCHED = "pool.switched"


def batch_cost(unit_cost: Cost, count: int) -> Cost:
    """Total cost of ``count`` pulls after the bulk discount."""
    if count not in BULK_DISCOUNTS:
        raise InvalidArgument(f"Invalid pull count {count}. Must be 1, 5, or 10")
    return unit_cost.times(count).discounted(BULK_DISCOUNTS[count])


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GachaState(BaseModel):
    """Persisted engine state, stored under the engine's state key."""

    current_pool: str = Field(default="standard", description="Pool used when none is given")
    pity: dict[str, PityState] = Field(
        default_factory=dict, description="Pity counters by pool id"
    )
    history: list[PullResult] = Field(default_factory=list, description="Recent pulls")
    event_end_times: dict[str, datetime] = Field(
        default_factory=dict, description="Runtime end time of time-limited pools"
    )

    @field_validator("event_end_times")
    @classmethod
    def _end_times_in_utc(cls, end_times: dict[str, datetime]) -> dict[str, datetime]:
        return {pool_id: as_utc(end) for pool_id, end in end_times.items()}


class BatchOutcome(Outcome):
    results: list[PullResult] = Field(default_factory=list)
    count: int = 0
    pool_id: Optional[str] = None
    total_cost: Cost = Field(default_factory=Cost)
    guaranteed_rare_used: bool = False

    @property
    def rare_pulls(self) -> list[PullResult]:
        return [r for r in self.results if r.rarity.at_least(Rarity.LEGENDARY)]


class NextGuaranteed(BaseModel):
    next_epic: int
    next_legendary: int


class PoolSummary(BaseModel):
    id: str
    name: str
    description: str
    cost: Cost
    guaranteed_rarity: Optional[Rarity] = None
    is_limited: bool = False
    end_time: Optional[datetime] = None


class PoolInfo(PoolSummary):
    pity_system: dict[str, int]
    current_pity: PityState
    rates: RateTable
    available_items: list[Item]
    next_guaranteed: NextGuaranteed


class StatisticsReport(Statistics):
    rarity_breakdown: dict[Rarity, int] = Field(default_factory=dict)
    recent_pulls: list[PullResult] = Field(default_factory=list)
    current_pity: dict[str, PityState] = Field(default_factory=dict)
    pull_history: list[PullResult] = Field(default_factory=list)


class SimulationReport(Outcome):
    total: int = 0
    rarities: dict[Rarity, int] = Field(default_factory=dict)
    percentages: dict[Rarity, float] = Field(default_factory=dict)


class GachaEngine:
    """Runs pulls against catalog pools, owning pity counters, history and statistics.

    Collaborators are injected: the catalog, the game-state store holding the
    player's currencies, the event bus, the random source and the clock. Pity
    state and history are only mutated by pulls; other systems read them
    through ``get_statistics`` and ``get_pool_info``.

    Attributes:
        catalog: Static rarity, item and pool configuration.
        store: Game-state store used for currencies and persistence.
        events: Event bus receiving pull and pool notifications.
        rng: Random source shared by the executor and the item selector.
        config: Engine settings.
    """

    def __init__(
        self,
        catalog: Catalog,
        store: GameStateStore,
        events: EventPublisher,
        rng: Optional[RandomSource] = None,
        clock: Optional[Callable[[], datetime]] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.events = events
        self.config = config or default_settings
        self.rng = rng or SeededRandom(self.config.seed)
        self.clock = clock or utc_now

        self.rate_engine = RateEngine(catalog)
        self.executor = PullExecutor(self.rng)
        self.selector = ItemSelector(catalog, self.rng)

        self._state = GachaState(current_pool=self.config.default_pool)
        self._ledger = HistoryLedger(limit=self.config.history_limit)
        self._statistics = Statistics()
        self._base_legendary_rate = catalog.base_rate_at_least(Rarity.LEGENDARY)
        self._busy = False
        self.is_initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load persisted state and statistics from the store."""
        saved_state = self.store.get(self.config.state_key)
        if saved_state:
            self._state = GachaState.model_validate(saved_state)
        saved_stats = self.store.get(self.config.stats_key)
        if saved_stats:
            self._statistics = Statistics.model_validate(saved_stats)

        if self.catalog.pool(self._state.current_pool) is None:
            logger.warning(
                f"Saved pool {self._state.current_pool} is not in the catalog, "
                f"falling back to {self.config.default_pool}"
            )
            self._state.current_pool = self.config.default_pool

        self._ledger = HistoryLedger(self._state.history, limit=self.config.history_limit)
        self.is_initialized = True

        self.events.emit(
            EVENT_INITIALIZED,
            {
                "pools": [pool.id for pool in self.catalog.pools],
                "currentPool": self._state.current_pool,
            },
        )
        logger.info(
            f"Gacha engine initialized: {len(self.catalog.pools)} pools, "
            f"{len(self._ledger)} pulls in history"
        )

    def save_state(self) -> None:
        """Persist state and statistics with a single store update."""
        self._state.history = self._ledger.entries()
        self.store.update(
            {
                self.config.state_key: self._state.model_dump(mode="json"),
                self.config.stats_key: self._statistics.model_dump(mode="json"),
            },
            {"source": "gacha:save"},
        )

    # ------------------------------------------------------------------
    # Pulls
    # ------------------------------------------------------------------

    @property
    def current_pool(self) -> str:
        return self._state.current_pool

    @property
    def is_busy(self) -> bool:
        return self._busy

    def pull_single(self, pool_id: Optional[str] = None) -> BatchOutcome:
        return self.pull_batch(1, pool_id)

    def pull_batch(self, count: int, pool_id: Optional[str] = None) -> BatchOutcome:
        """Pull ``count`` (1, 5 or 10) times from a pool, the current one by default.

        Rejected requests leave currencies, pity and history untouched. For a
        10-pull whose first nine results are all below Rare, the last pull is
        drawn from the Rare-or-better rates.

        Returns:
            BatchOutcome with the results, or an error describing the rejection.
        """
        self._require_initialized()
        try:
            if self._busy:
                raise EngineBusy("A pull is already in progress")
            if count not in BULK_DISCOUNTS:
                raise InvalidArgument(f"Invalid pull count {count}. Must be 1, 5, or 10")
            pool = self._resolve_pool(pool_id)
            total_cost = batch_cost(pool.cost, count)
            self._check_affordability(total_cost)
        except GachaError as e:
            logger.info(f"Pull request rejected: {e.message}")
            return BatchOutcome.failure(e.to_error(), count=count, pool_id=pool_id)

        self._busy = True
        try:
            return self._execute_batch(pool, count, total_cost)
        finally:
            self._busy = False

    def _execute_batch(self, pool: Pool, count: int, total_cost: Cost) -> BatchOutcome:
        self._deduct(total_cost)
        try:
            results, pity, guaranteed_used = self._draw_batch(pool, count)
        except Exception:
            logger.exception(f"Pull batch on {pool.id} failed, refunding {total_cost}")
            self._refund(total_cost)
            raise

        self._state.pity[pool.id] = pity
        self._ledger.extend(results)
        self._statistics.record_spend(total_cost)
        for result in results:
            self._statistics.record_pull(result.rarity, self._base_legendary_rate)
        self.save_state()

        outcome = BatchOutcome(
            results=results,
            count=count,
            pool_id=pool.id,
            total_cost=total_cost,
            guaranteed_rare_used=guaranteed_used,
        )
        logger.debug(
            f"Pulled {count} from {pool.id}: {[r.rarity.value for r in results]}"
        )
        self._emit_pull_events(pool, outcome)
        return outcome

    def _draw_batch(self, pool: Pool, count: int) -> tuple[list[PullResult], PityState, bool]:
        """Draw ``count`` results, threading the pity state from one draw into the next."""
        pity = self.pity_for(pool.id)
        results: list[PullResult] = []
        guaranteed_used = False

        for index in range(count):
            guarantee = (
                count == GUARANTEED_RARE_BATCH
                and index == count - 1
                and not any(r.rarity.at_least(Rarity.RARE) for r in results)
            )
            table = self.rate_engine.compute(pool, pity)
            rarity, pity = self.executor.draw(pool, table, pity, guarantee_rare=guarantee)
            item = self.selector.pick(pool, rarity)
            results.append(
                PullResult(
                    id=uuid.uuid4().hex,
                    rarity=rarity,
                    item_id=item.id,
                    item_name=item.name,
                    category=item.category,
                    pool_id=pool.id,
                    timestamp=self.clock(),
                    batch_index=index,
                    guaranteed=guarantee,
                )
            )
            guaranteed_used = guaranteed_used or guarantee

        return results, pity, guaranteed_used

    def _emit_pull_events(self, pool: Pool, outcome: BatchOutcome) -> None:
        if outcome.count == 1:
            self.events.emit(
                EVENT_PULL_COMPLETED,
                {"result": outcome.results[0], "pool": pool.id, "cost": outcome.total_cost},
            )
        else:
            self.events.emit(
                EVENT_BATCH_COMPLETED,
                {
                    "results": outcome.results,
                    "count": outcome.count,
                    "pool": pool.id,
                    "totalCost": outcome.total_cost,
                    "guaranteedRareUsed": outcome.guaranteed_rare_used,
                },
            )
        for result in outcome.rare_pulls:
            self.events.emit(EVENT_PULL_RARE, {"result": result})

    # ------------------------------------------------------------------
    # Currency
    # ------------------------------------------------------------------

    def balances(self) -> tuple[int, int]:
        primary = self.store.get(self.config.primary_currency_path) or 0
        secondary = self.store.get(self.config.secondary_currency_path) or 0
        return primary, secondary

    def _check_affordability(self, cost: Cost) -> None:
        shortfall = cost.shortfall(*self.balances())
        if shortfall is not None:
            raise InsufficientResources(shortfall)

    def _deduct(self, cost: Cost) -> None:
        self._adjust_balances(cost, sign=-1, source="gacha:spend")

    def _refund(self, cost: Cost) -> None:
        self._adjust_balances(cost, sign=1, source="gacha:refund")

    def _adjust_balances(self, cost: Cost, sign: int, source: str) -> None:
        primary, secondary = self.balances()
        changes: dict[str, int] = {}
        if cost.primary:
            changes[self.config.primary_currency_path] = primary + sign * cost.primary
        if cost.secondary:
            changes[self.config.secondary_currency_path] = secondary + sign * cost.secondary
        if changes:
            self.store.update(_nested_patch(changes), {"source": source})

    # ------------------------------------------------------------------
    # Pools
    # ------------------------------------------------------------------

    def pool_end_time(self, pool: Pool) -> Optional[datetime]:
        return self._state.event_end_times.get(pool.id) or pool.expires_at

    def is_pool_available(self, pool: Pool) -> bool:
        if not pool.time_limited:
            return True
        end_time = self.pool_end_time(pool)
        return end_time is not None and self.clock() < end_time

    def _resolve_pool(self, pool_id: Optional[str]) -> Pool:
        pool_id = pool_id or self._state.current_pool
        pool = self.catalog.pool(pool_id)
        if pool is None:
            raise InvalidArgument(f"Invalid pool: {pool_id}")
        if not self.is_pool_available(pool):
            raise PoolUnavailable(f"Pool {pool_id} is not available")
        return pool

    def switch_pool(self, pool_id: str) -> Outcome:
        self._require_initialized()
        try:
            pool = self._resolve_pool(pool_id)
        except GachaError as e:
            logger.info(f"Pool switch rejected: {e.message}")
            return Outcome.failure(e.to_error())

        self._state.current_pool = pool.id
        self.save_state()
        logger.info(f"Switched to pool {pool.id}")
        self.events.emit(
            EVENT_POOL_SWITCHED, {"pool": pool.id, "info": self.get_pool_info(pool.id)}
        )
        return Outcome()

    def set_event_end_time(self, pool_id: str, end_time: datetime) -> Outcome:
        """Open a time-limited pool until ``end_time``."""
        self._require_initialized()
        pool = self.catalog.pool(pool_id)
        if pool is None or not pool.time_limited:
            error = InvalidArgument(f"{pool_id} is not a time-limited pool")
            return Outcome.failure(error.to_error())

        end_time = as_utc(end_time)
        self._state.event_end_times[pool.id] = end_time
        self.save_state()
        logger.info(f"Pool {pool.id} open until {end_time.isoformat()}")
        return Outcome()

    def pity_for(self, pool_id: str) -> PityState:
        return self._state.pity.get(pool_id, PityState())

    def _summary(self, pool: Pool) -> dict:
        return {
            "id": pool.id,
            "name": pool.name,
            "description": pool.description,
            "cost": pool.cost,
            "guaranteed_rarity": pool.guaranteed_rarity,
            "is_limited": pool.time_limited,
            "end_time": self.pool_end_time(pool),
        }

    def get_pool_info(self, pool_id: Optional[str] = None) -> Optional[PoolInfo]:
        pool = self.catalog.pool(pool_id or self._state.current_pool)
        if pool is None:
            return None

        pity = self.pity_for(pool.id)
        return PoolInfo(
            **self._summary(pool),
            pity_system=pool.pity_system.model_dump(),
            current_pity=pity,
            rates=self.rate_engine.compute(pool, pity),
            available_items=self.catalog.eligible_items(pool),
            next_guaranteed=NextGuaranteed(
                next_epic=max(0, pool.pity_system.hard_pity - pity.epic_misses),
                next_legendary=max(0, pool.pity_system.legendary_pity - pity.legendary_misses),
            ),
        )

    def get_available_pools(self) -> list[PoolSummary]:
        return [
            PoolSummary(**self._summary(pool))
            for pool in self.catalog.pools
            if self.is_pool_available(pool)
        ]

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_statistics(self) -> StatisticsReport:
        """Lifetime statistics plus recent history, read-only copies."""
        return StatisticsReport(
            **self._statistics.model_dump(),
            rarity_breakdown=self._ledger.rarity_breakdown(self.config.recent_window),
            recent_pulls=self._ledger.recent(self.config.recent_window),
            current_pity=dict(self._state.pity),
            pull_history=self._ledger.recent(self.config.display_window),
        )

    def history(self) -> list[PullResult]:
        return self._ledger.entries()

    def simulate_pulls(
        self,
        count: int,
        pool_id: Optional[str] = None,
        rng: Optional[RandomSource] = None,
    ) -> SimulationReport:
        """Sample rarities from a pool's current rates without touching any state."""
        try:
            if count <= 0:
                raise InvalidArgument("Simulation count must be positive")
            pool = self.catalog.pool(pool_id or self._state.current_pool)
            if pool is None:
                raise InvalidArgument(f"Invalid pool: {pool_id}")
        except GachaError as e:
            return SimulationReport.failure(e.to_error())

        rng = rng or self.rng
        table = self.rate_engine.compute(pool, self.pity_for(pool.id))
        rarities = {rarity: 0 for rarity in Rarity}
        for _ in range(count):
            rarities[sample_rarity(table, rng.next())] += 1

        return SimulationReport(
            total=count,
            rarities=rarities,
            percentages={r: round(n / count * 100, 2) for r, n in rarities.items()},
        )

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise RuntimeError("GachaEngine not initialized")


def _nested_patch(changes: dict[str, int]) -> dict:
    """Turn ``{"player.jade": 5}`` into ``{"player": {"jade": 5}}``."""
    patch: dict = {}
    for path, value in changes.items():
        *parents, leaf = path.split(".")
        node = patch
        for key in parents:
            node = node.setdefault(key, {})
        node[leaf] = value
    return patch
