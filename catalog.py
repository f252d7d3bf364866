import json
import math
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from errors import CatalogError, Shortfall
from rarity import RATE_TOLERANCE, Rarity, RateTable


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime as UTC; aware values are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ItemScope(str, Enum):
    """Which catalog items a pool can hand out"""

    ALL = "all"  # Every item in the catalog
    FILTERED = "filtered"  # Only categories listed in the pool's category bonus
    EVENT = "event"  # Event pools only carry Epic-or-better items


class Cost(BaseModel):
    """Amounts of the two abstract currencies."""

    primary: int = Field(default=0, ge=0, description="Primary currency amount")
    secondary: int = Field(default=0, ge=0, description="Secondary currency amount")

    model_config = {"frozen": True}

    def times(self, count: int) -> "Cost":
        return Cost(primary=self.primary * count, secondary=self.secondary * count)

    def discounted(self, factor: float) -> "Cost":
        """Apply a multiplicative discount, flooring each currency independently."""
        return Cost(
            primary=math.floor(self.primary * factor),
            secondary=math.floor(self.secondary * factor),
        )

    def shortfall(self, primary_balance: int, secondary_balance: int) -> Optional[Shortfall]:
        """Return what is missing to pay this cost, or None when affordable."""
        missing = Shortfall(
            primary=max(0, self.primary - primary_balance),
            secondary=max(0, self.secondary - secondary_balance),
        )
        if missing.primary == 0 and missing.secondary == 0:
            return None
        return missing

    def __add__(self, other: "Cost") -> "Cost":
        return Cost(
            primary=self.primary + other.primary,
            secondary=self.secondary + other.secondary,
        )


class RarityInfo(BaseModel):
    rarity: Rarity
    drop_rate: float = Field(..., ge=0.0, le=1.0, description="Base drop rate")
    color: str = Field("#9ca3af", description="Display color")


class Item(BaseModel):
    id: str = Field(..., description="Stable catalog id")
    name: str = Field(..., description="Display name")
    rarity: Rarity
    category: str = Field(..., description="Item category, used for category bonuses")
    description: str = ""

    model_config = {"frozen": True}


class PitySystem(BaseModel):
    soft_pity: int = Field(..., ge=1, description="Misses after which epic+ rates ramp up")
    hard_pity: int = Field(
        ..., ge=1, description="Misses at which an Epic or better is forced"
    )
    legendary_pity: int = Field(
        ..., ge=1, description="Misses at which a Legendary is forced"
    )


class Pool(BaseModel):
    """Static configuration of a pull pool.

    Pools are loaded once with the catalog and never mutated afterwards.
    """

    id: str
    name: str
    description: str = ""
    cost: Cost = Field(default_factory=Cost, description="Cost of a single pull")
    guaranteed_rarity: Optional[Rarity] = Field(
        None, description="Floor rarity applied to every pull from this pool"
    )
    pity_system: PitySystem
    rate_modifiers: dict[Rarity, float] = Field(
        default_factory=dict,
        description="Per-rarity multiplier applied to base rates before normalization",
    )
    category_bonus: Optional[dict[str, float]] = Field(
        None, description="Per-category item weight"
    )
    item_scope: ItemScope = ItemScope.ALL
    time_limited: bool = False
    expires_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @field_validator("rate_modifiers")
    @classmethod
    def _modifiers_non_negative(cls, modifiers: dict[Rarity, float]) -> dict[Rarity, float]:
        for rarity, modifier in modifiers.items():
            if modifier < 0:
                raise ValueError(f"Rate modifier for {rarity.value} cannot be negative")
        return modifiers

    @field_validator("category_bonus")
    @classmethod
    def _bonus_non_negative(
        cls, bonus: Optional[dict[str, float]]
    ) -> Optional[dict[str, float]]:
        if bonus:
            for category, weight in bonus.items():
                if weight < 0:
                    raise ValueError(f"Category bonus for {category} cannot be negative")
        return bonus

    @field_validator("expires_at")
    @classmethod
    def _expiry_in_utc(cls, expires_at: Optional[datetime]) -> Optional[datetime]:
        return as_utc(expires_at) if expires_at is not None else None

    def modifier(self, rarity: Rarity) -> float:
        return self.rate_modifiers.get(rarity, 1.0)


class Catalog(BaseModel):
    """Rarity tables, items and pools supplied as static configuration."""

    rarities: list[RarityInfo]
    categories: list[str] = Field(default_factory=list)
    items: list[Item] = Field(default_factory=list)
    pools: list[Pool] = Field(default_factory=list)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _validate(self) -> "Catalog":
        declared = [info.rarity for info in self.rarities]
        if sorted(declared, key=lambda r: r.rank) != list(Rarity):
            raise ValueError("Catalog must declare every rarity tier exactly once")
        total = sum(info.drop_rate for info in self.rarities)
        if abs(total - 1.0) > RATE_TOLERANCE:
            raise ValueError(f"Base drop rates must sum to 1.0, got {total}")

        item_ids = [item.id for item in self.items]
        if len(item_ids) != len(set(item_ids)):
            raise ValueError("Item ids must be unique")
        pool_ids = [pool.id for pool in self.pools]
        if len(pool_ids) != len(set(pool_ids)):
            raise ValueError("Pool ids must be unique")

        for pool in self.pools:
            mass = sum(
                info.drop_rate * pool.modifier(info.rarity) for info in self.rarities
            )
            if mass <= 0:
                raise ValueError(f"Pool {pool.id} has no probability mass left")
        return self

    def base_rates(self) -> RateTable:
        return RateTable(rates={info.rarity: info.drop_rate for info in self.rarities})

    def base_rate_at_least(self, floor: Rarity) -> float:
        return sum(info.drop_rate for info in self.rarities if info.rarity.at_least(floor))

    def color(self, rarity: Rarity) -> str:
        for info in self.rarities:
            if info.rarity == rarity:
                return info.color
        return "#9ca3af"

    def pool(self, pool_id: str) -> Optional[Pool]:
        for pool in self.pools:
            if pool.id == pool_id:
                return pool
        return None

    def items_of_rarity(self, rarity: Rarity) -> list[Item]:
        return [item for item in self.items if item.rarity == rarity]

    def eligible_items(self, pool: Pool) -> list[Item]:
        if pool.item_scope == ItemScope.FILTERED and pool.category_bonus:
            return [item for item in self.items if item.category in pool.category_bonus]
        if pool.item_scope == ItemScope.EVENT:
            return [item for item in self.items if item.rarity.at_least(Rarity.EPIC)]
        return list(self.items)


def load_catalog(source: Union[dict, str, Path]) -> Catalog:
    """Build a catalog from a mapping or a JSON file path.

    Raises:
        CatalogError: If the configuration is malformed.
    """
    if isinstance(source, (str, Path)):
        with open(source, encoding="utf-8") as f:
            source = json.load(f)
    try:
        return Catalog.model_validate(source)
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog configuration: {e}") from e
