from pydantic import BaseModel, Field

from rarity import Rarity


class PityState(BaseModel):
    """Consecutive-miss counters for one pool.

    States are frozen: a draw produces a new state via ``after`` and the caller
    threads it into the next draw.
    """

    epic_misses: int = Field(default=0, ge=0, description="Pulls since the last Epic or better")
    legendary_misses: int = Field(
        default=0, ge=0, description="Pulls since the last Legendary or better"
    )

    model_config = {"frozen": True}

    def after(self, rarity: Rarity) -> "PityState":
        """Return the counters after drawing ``rarity``."""
        if rarity.at_least(Rarity.LEGENDARY):
            return PityState(epic_misses=0, legendary_misses=0)
        if rarity.at_least(Rarity.EPIC):
            # Epic resets the epic counter but still counts as a legendary miss
            return PityState(epic_misses=0, legendary_misses=self.legendary_misses + 1)
        return PityState(
            epic_misses=self.epic_misses + 1,
            legendary_misses=self.legendary_misses + 1,
        )
