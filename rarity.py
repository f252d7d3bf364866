from enum import Enum

from pydantic import BaseModel, Field, field_validator

RATE_TOLERANCE = 1e-9


class Rarity(str, Enum):
    """Rarity tiers, declared from lowest to highest."""

    COMMON = "Common"
    UNCOMMON = "Uncommon"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"
    MYTHICAL = "Mythical"

    @property
    def rank(self) -> int:
        """1-based tier rank (Common = 1, Mythical = 6)."""
        return _RANKS[self]

    def at_least(self, other: "Rarity") -> bool:
        return self.rank >= other.rank

    @classmethod
    def ordered(cls) -> list["Rarity"]:
        return sorted(cls, key=lambda r: r.rank)


_RANKS = {rarity: index + 1 for index, rarity in enumerate(Rarity)}


class RateTable(BaseModel):
    """Probability of drawing each rarity.

    A table produced by ``normalized()`` sums to 1.0 within ``RATE_TOLERANCE``.
    Tables are frozen; every transformation returns a new table.
    """

    rates: dict[Rarity, float] = Field(
        default_factory=dict, description="Probability per rarity"
    )

    model_config = {"frozen": True}

    @field_validator("rates")
    @classmethod
    def _non_negative(cls, rates: dict[Rarity, float]) -> dict[Rarity, float]:
        for rarity, rate in rates.items():
            if rate < 0:
                raise ValueError(f"Rate for {rarity.value} cannot be negative")
        return rates

    def total(self) -> float:
        return sum(self.rates.values())

    def is_normalized(self) -> bool:
        return abs(self.total() - 1.0) <= RATE_TOLERANCE

    def get(self, rarity: Rarity) -> float:
        return self.rates.get(rarity, 0.0)

    def normalized(self) -> "RateTable":
        """Divide every entry by the current sum."""
        total = self.total()
        if total <= 0:
            raise ValueError("Cannot normalize a rate table with no probability mass")
        return RateTable(rates={r: rate / total for r, rate in self.rates.items()})

    def scaled(self, factors: dict[Rarity, float]) -> "RateTable":
        """Multiply the given rarities by their factor, leaving others as-is."""
        return RateTable(
            rates={r: rate * factors.get(r, 1.0) for r, rate in self.rates.items()}
        )

    def restricted_to(self, floor: Rarity) -> "RateTable":
        """Keep only rarities at or above ``floor`` (not renormalized)."""
        return RateTable(
            rates={r: rate for r, rate in self.rates.items() if r.at_least(floor)}
        )

    def ascending(self) -> list[tuple[Rarity, float]]:
        """Entries sorted by tier, lowest first."""
        return sorted(self.rates.items(), key=lambda item: item[0].rank)
