import math

from loguru import logger

from catalog import Catalog, Item, Pool
from draw import RandomSource
from rarity import Rarity

UNKNOWN_CATEGORY = "Unknown"


def placeholder_item(rarity: Rarity) -> Item:
    """Item handed out when the catalog has nothing at all for a rarity."""
    return Item(
        id=f"placeholder_{rarity.value.lower()}",
        name=f"Unidentified {rarity.value} Scripture",
        rarity=rarity,
        category=UNKNOWN_CATEGORY,
    )


class ItemSelector:
    def __init__(self, catalog: Catalog, rng: RandomSource) -> None:
        self.catalog = catalog
        self.rng = rng

    def pick(self, pool: Pool, rarity: Rarity) -> Item:
        """Pick an item of ``rarity``.

        Items in the pool's scope are weighted by its category bonus. When the
        scope has none, the whole catalog is drawn from uniformly.
        """
        scoped = [item for item in self.catalog.eligible_items(pool) if item.rarity == rarity]
        if scoped:
            if pool.category_bonus:
                return self._choose(self._weighted(scoped, pool.category_bonus))
            return self._choose(scoped)

        logger.debug(f"Pool {pool.id} has no {rarity.value} items, using full catalog")
        items = self.catalog.items_of_rarity(rarity)
        if not items:
            logger.warning(
                f"Data integrity: catalog has no {rarity.value} items (pool {pool.id}), "
                "handing out a placeholder"
            )
            return placeholder_item(rarity)
        return self._choose(items)

    @staticmethod
    def _weighted(items: list[Item], bonus: dict[str, float]) -> list[Item]:
        # Each item is replicated by its integer weight, then one entry is drawn uniformly
        weighted: list[Item] = []
        for item in items:
            weight = max(1, math.floor(bonus.get(item.category, 1.0) * 100))
            weighted.extend([item] * weight)
        return weighted

    def _choose(self, items: list[Item]) -> Item:
        index = min(int(self.rng.next() * len(items)), len(items) - 1)
        return items[index]
