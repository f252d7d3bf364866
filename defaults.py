"""Built-in scripture catalog: rarity tiers, categories, items and pools."""

from catalog import Catalog, Cost, Item, ItemScope, PitySystem, Pool, RarityInfo
from rarity import Rarity

QI = "Qi Technique"
BODY = "Body Technique"
DUAL = "Dual Cultivation"
SUPPORT = "Support"


def create_default_rarities() -> list[RarityInfo]:
    return [
        RarityInfo(rarity=Rarity.COMMON, drop_rate=0.50, color="#9ca3af"),
        RarityInfo(rarity=Rarity.UNCOMMON, drop_rate=0.30, color="#10b981"),
        RarityInfo(rarity=Rarity.RARE, drop_rate=0.15, color="#3b82f6"),
        RarityInfo(rarity=Rarity.EPIC, drop_rate=0.04, color="#8b5cf6"),
        RarityInfo(rarity=Rarity.LEGENDARY, drop_rate=0.009, color="#f59e0b"),
        RarityInfo(rarity=Rarity.MYTHICAL, drop_rate=0.001, color="#ef4444"),
    ]


def create_default_items() -> list[Item]:
    """Create the default scripture list, four per tier below Legendary."""
    entries = [
        ("basic_breathing", "Basic Breathing Method", Rarity.COMMON, QI,
         "The most fundamental qi cultivation method, teaching proper breathing patterns"),
        ("iron_body_training", "Iron Body Training", Rarity.COMMON, BODY,
         "Fundamental body strengthening exercises using resistance training"),
        ("harmony_five_elements", "Harmony of Five Elements", Rarity.COMMON, DUAL,
         "Balances the five classical elements within the cultivator"),
        ("meditation_calm_mind", "Meditation of the Calm Mind", Rarity.COMMON, SUPPORT,
         "Teaches mental discipline and focus enhancement"),
        ("flowing_river_qi", "Flowing River Qi Method", Rarity.UNCOMMON, QI,
         "Channels qi like a flowing river, smooth and continuous"),
        ("mountain_endurance", "Mountain Endurance Technique", Rarity.UNCOMMON, BODY,
         "Builds endurance and resilience like an immovable mountain"),
        ("wind_walker_grace", "Wind Walker's Grace", Rarity.UNCOMMON, DUAL,
         "Combines lightness techniques with qi manipulation"),
        ("herb_gathering_wisdom", "Herb Gathering Wisdom", Rarity.UNCOMMON, SUPPORT,
         "Knowledge of spiritual herbs and their cultivation effects"),
        ("celestial_star_qi", "Celestial Star Qi Absorption", Rarity.RARE, QI,
         "Draws power from celestial bodies during cultivation"),
        ("adamant_bone_forging", "Adamant Bone Forging", Rarity.RARE, BODY,
         "Transforms bones into material harder than steel"),
        ("yin_yang_circulation", "Yin-Yang Circulation Manual", Rarity.RARE, DUAL,
         "Balances opposing forces for perfect cultivation harmony"),
        ("formation_master_basics", "Formation Master's Basics", Rarity.RARE, SUPPORT,
         "Fundamental knowledge of formation arrays and spiritual patterns"),
        ("nine_heavens_lightning", "Nine Heavens Lightning Scripture", Rarity.EPIC, QI,
         "Harnesses the devastating power of celestial lightning"),
        ("primordial_dragon_body", "Primordial Dragon Body", Rarity.EPIC, BODY,
         "Awakens the ancient dragon bloodline within"),
        ("chaos_order_paradox", "Chaos-Order Paradox Method", Rarity.EPIC, DUAL,
         "Embraces both chaos and order to transcend conventional limits"),
        ("void_comprehension", "Void Comprehension Scripture", Rarity.EPIC, SUPPORT,
         "Teaches understanding of the void between all things"),
        ("eternal_dao_heart", "Eternal Dao Heart Sutra", Rarity.LEGENDARY, DUAL,
         "The supreme technique of the eternal dao, transcending mortal limitations"),
        ("world_tree_incarnation", "World Tree Incarnation", Rarity.LEGENDARY, BODY,
         "Transforms the body into a vessel for the World Tree's power"),
        ("stellar_forge_qi", "Stellar Forge Qi Manual", Rarity.LEGENDARY, QI,
         "Channels the qi-forging power of stellar cores"),
        ("time_space_mastery", "Time-Space Mastery Chronicle", Rarity.LEGENDARY, SUPPORT,
         "Grants mastery over the fundamental forces of time and space"),
        ("origin_codex_creation", "Origin Codex of Creation", Rarity.MYTHICAL, DUAL,
         "Contains the fundamental laws used to create the universe"),
        ("akashic_records", "Akashic Records Interface", Rarity.MYTHICAL, SUPPORT,
         "Provides access to the universal repository of all knowledge"),
    ]
    return [
        Item(id=item_id, name=name, rarity=rarity, category=category, description=description)
        for item_id, name, rarity, category, description in entries
    ]


def create_default_pools() -> list[Pool]:
    return [
        Pool(
            id="standard",
            name="Standard Scripture Pool",
            description="The basic pool containing all standard scriptures",
            cost=Cost(primary=100),
            pity_system=PitySystem(soft_pity=75, hard_pity=90, legendary_pity=180),
            rate_modifiers={Rarity.MYTHICAL: 0.5},
        ),
        Pool(
            id="premium",
            name="Premium Scripture Pool",
            description="Enhanced rates for higher rarity scriptures",
            cost=Cost(secondary=50),
            guaranteed_rarity=Rarity.RARE,
            pity_system=PitySystem(soft_pity=50, hard_pity=70, legendary_pity=140),
            rate_modifiers={
                Rarity.COMMON: 0.6,
                Rarity.UNCOMMON: 0.8,
                Rarity.RARE: 1.3,
                Rarity.EPIC: 1.5,
                Rarity.LEGENDARY: 2.0,
                Rarity.MYTHICAL: 1.0,
            },
        ),
        Pool(
            id="qi_focus",
            name="Qi Technique Focus",
            description="Increased chances for qi-focused techniques",
            cost=Cost(primary=150),
            guaranteed_rarity=Rarity.UNCOMMON,
            pity_system=PitySystem(soft_pity=60, hard_pity=80, legendary_pity=160),
            category_bonus={QI: 3.0, DUAL: 1.2, BODY: 0.3, SUPPORT: 0.7},
            item_scope=ItemScope.FILTERED,
        ),
        Pool(
            id="body_focus",
            name="Body Technique Focus",
            description="Increased chances for body-focused techniques",
            cost=Cost(primary=150),
            guaranteed_rarity=Rarity.UNCOMMON,
            pity_system=PitySystem(soft_pity=60, hard_pity=80, legendary_pity=160),
            category_bonus={BODY: 3.0, DUAL: 1.2, QI: 0.3, SUPPORT: 0.7},
            item_scope=ItemScope.FILTERED,
        ),
        Pool(
            id="event_limited",
            name="Limited Time Event",
            description="Special event pool with exclusive scriptures",
            cost=Cost(secondary=75),
            guaranteed_rarity=Rarity.EPIC,
            pity_system=PitySystem(soft_pity=40, hard_pity=60, legendary_pity=120),
            rate_modifiers={
                Rarity.COMMON: 0.3,
                Rarity.UNCOMMON: 0.5,
                Rarity.RARE: 0.8,
                Rarity.EPIC: 2.0,
                Rarity.LEGENDARY: 3.0,
                Rarity.MYTHICAL: 2.0,
            },
            item_scope=ItemScope.EVENT,
            time_limited=True,
        ),
    ]


def create_default_catalog() -> Catalog:
    return Catalog(
        rarities=create_default_rarities(),
        categories=[QI, BODY, DUAL, SUPPORT],
        items=create_default_items(),
        pools=create_default_pools(),
    )
