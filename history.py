"""Pull history with bounded retention and running statistics."""

from collections import deque
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from catalog import Cost
from rarity import Rarity

DEFAULT_HISTORY_LIMIT = 1000


class PullResult(BaseModel):
    """Outcome of one unit pull. Immutable once created."""

    id: str = Field(..., description="Unique pull id")
    rarity: Rarity
    item_id: str
    item_name: str
    category: str
    pool_id: str
    timestamp: datetime
    batch_index: int = Field(0, ge=0, description="Position within its batch")
    guaranteed: bool = Field(False, description="Drawn in guaranteed-rare mode")

    model_config = {"frozen": True}


class Statistics(BaseModel):
    """Lifetime pull statistics, updated incrementally on every pull."""

    total_pulls: int = 0
    spend_by_currency: Cost = Field(default_factory=Cost)
    obtained_by_rarity: dict[Rarity, int] = Field(default_factory=dict)
    average_rarity_level: float = 0.0
    luck_score: int = 100

    def record_spend(self, cost: Cost) -> None:
        self.spend_by_currency = self.spend_by_currency + cost

    def record_pull(self, rarity: Rarity, base_legendary_rate: float) -> None:
        """Count one pull and refresh the derived metrics.

        Args:
            rarity: Rarity obtained.
            base_legendary_rate: Catalog base rate of Legendary-or-better, used
                as the expected rate for the luck score.
        """
        self.total_pulls += 1
        self.obtained_by_rarity[rarity] = self.obtained_by_rarity.get(rarity, 0) + 1

        rank_sum = sum(r.rank * count for r, count in self.obtained_by_rarity.items())
        self.average_rarity_level = rank_sum / self.total_pulls

        observed = sum(
            count
            for r, count in self.obtained_by_rarity.items()
            if r.at_least(Rarity.LEGENDARY)
        )
        expected = self.total_pulls * base_legendary_rate
        self.luck_score = round(observed / expected * 100) if expected > 0 else 100


class HistoryLedger:
    """Append-only log keeping the most recent ``limit`` pulls, oldest first."""

    def __init__(
        self, entries: Optional[Iterable[PullResult]] = None, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> None:
        self._entries: deque[PullResult] = deque(entries or (), maxlen=limit)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, result: PullResult) -> None:
        self._entries.append(result)

    def extend(self, results: Iterable[PullResult]) -> None:
        self._entries.extend(results)

    def entries(self) -> list[PullResult]:
        return list(self._entries)

    def recent(self, count: int) -> list[PullResult]:
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    def rarity_breakdown(self, count: int) -> dict[Rarity, int]:
        """Number of pulls per rarity among the last ``count`` entries."""
        breakdown = {rarity: 0 for rarity in Rarity}
        for result in self.recent(count):
            breakdown[result.rarity] += 1
        return breakdown
