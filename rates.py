"""Rate composition: base rates, pool modifiers and pity boosts."""

from catalog import Catalog, Pool
from pity import PityState
from rarity import Rarity, RateTable

SOFT_PITY_STEP = 0.1
LEGENDARY_SOFT_PITY_RATIO = 1.5
LEGENDARY_SOFT_PITY_STEP = 0.05


class RateEngine:
    """Composes the rate table used for a single draw.

    1. Start from the catalog's base drop rates.
    2. Multiply by the pool's per-rarity modifiers and renormalize.
    3. Past soft pity, ramp Epic/Legendary/Mythical linearly with the epic
       miss counter.
    4. Past ``soft_pity * 1.5`` legendary misses, ramp Legendary/Mythical again.
    5. Renormalize.
    """

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def pool_rates(self, pool: Pool) -> RateTable:
        """Base rates with the pool modifiers applied, normalized."""
        base = self.catalog.base_rates()
        factors = {rarity: pool.modifier(rarity) for rarity in base.rates}
        return base.scaled(factors).normalized()

    def compute(self, pool: Pool, pity: PityState) -> RateTable:
        rates = self.pool_rates(pool)
        pity_system = pool.pity_system

        if pity.epic_misses >= pity_system.soft_pity:
            factor = 1 + (pity.epic_misses - pity_system.soft_pity) * SOFT_PITY_STEP
            rates = rates.scaled(
                {Rarity.EPIC: factor, Rarity.LEGENDARY: factor, Rarity.MYTHICAL: factor}
            )

        legendary_threshold = pity_system.soft_pity * LEGENDARY_SOFT_PITY_RATIO
        if pity.legendary_misses >= legendary_threshold:
            factor = (
                1 + (pity.legendary_misses - legendary_threshold) * LEGENDARY_SOFT_PITY_STEP
            )
            rates = rates.scaled({Rarity.LEGENDARY: factor, Rarity.MYTHICAL: factor})

        return rates.normalized()
