import random
from typing import Optional, Protocol

from catalog import Pool
from pity import PityState
from rarity import Rarity, RateTable

HARD_PITY_LEGENDARY_CHANCE = 0.3


class RandomSource(Protocol):
    def next(self) -> float:
        """Return a uniform float in [0, 1)."""
        ...


class SeededRandom:
    """RandomSource backed by ``random.Random``; unseeded means OS entropy."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._random = random.Random(seed)

    def next(self) -> float:
        return self._random.random()


def sample_rarity(table: RateTable, roll: float) -> Rarity:
    """Inverse-CDF sample: the first tier (lowest first) whose cumulative mass covers ``roll``."""
    entries = table.ascending()
    cumulative = 0.0
    for rarity, rate in entries:
        if rate <= 0:
            continue
        cumulative += rate
        if cumulative >= roll:
            return rarity
    # Only reachable through float rounding
    return entries[0][0] if entries else Rarity.COMMON


class PullExecutor:
    def __init__(self, rng: RandomSource) -> None:
        self.rng = rng

    def draw(
        self,
        pool: Pool,
        table: RateTable,
        pity: PityState,
        guarantee_rare: bool = False,
    ) -> tuple[Rarity, PityState]:
        """Draw one rarity and return it with the resulting pity state.

        Args:
            pool: The pool being pulled from.
            table: Normalized rates for this draw.
            pity: Pity counters before the draw.
            guarantee_rare: Restrict a regular draw to Rare or better.

        Returns:
            Tuple of (rarity drawn, pity state after the draw).
        """
        rarity = self._determine_rarity(pool, table, pity, guarantee_rare)

        floor = pool.guaranteed_rarity
        if floor is not None and not rarity.at_least(floor):
            rarity = floor

        return rarity, pity.after(rarity)

    def _determine_rarity(
        self, pool: Pool, table: RateTable, pity: PityState, guarantee_rare: bool
    ) -> Rarity:
        pity_system = pool.pity_system
        if pity.legendary_misses >= pity_system.legendary_pity:
            return Rarity.LEGENDARY
        if pity.epic_misses >= pity_system.hard_pity:
            if self.rng.next() < HARD_PITY_LEGENDARY_CHANCE:
                return Rarity.LEGENDARY
            return Rarity.EPIC
        if guarantee_rare:
            return self._draw_rare_or_better(table)
        return sample_rarity(table, self.rng.next())

    def _draw_rare_or_better(self, table: RateTable) -> Rarity:
        subset = table.restricted_to(Rarity.RARE)
        if subset.total() <= 0:
            return Rarity.RARE
        return sample_rarity(subset.normalized(), self.rng.next())
