from earthgame.domain.models.actor import Actor, ActorStatus
from earthgame.domain.models.item import CatalogItem, ItemCategory, Rarity
from earthgame.domain.models.location import ActionKind, Location


DEMO_WALLET = "DemoWa11et1111111111111111111111111111111111"

SEED_LOCATIONS = (
    Location(
        id="loc-rust-flats",
        name="Rust Flats",
        biome="desert",
        difficulty=1,
        supported_actions=frozenset({ActionKind.MINE}),
    ),
    Location(
        id="loc-glass-caverns",
        name="Glass Caverns",
        biome="cave",
        difficulty=3,
        supported_actions=frozenset({ActionKind.MINE}),
    ),
    Location(
        id="loc-haven-market",
        name="Haven Market",
        biome="city",
        difficulty=1,
        supported_actions=frozenset(),
    ),
)

SEED_ITEMS = (
    CatalogItem(id="item-scrap-iron", name="Scrap Iron", category=ItemCategory.MATERIAL, rarity=Rarity.COMMON),
    CatalogItem(id="item-copper-wire", name="Copper Wire", category=ItemCategory.MATERIAL, rarity=Rarity.COMMON),
    CatalogItem(id="item-quartz-shard", name="Quartz Shard", category=ItemCategory.MATERIAL, rarity=Rarity.UNCOMMON),
    CatalogItem(id="item-cobalt-ore", name="Cobalt Ore", category=ItemCategory.MATERIAL, rarity=Rarity.RARE),
    CatalogItem(id="item-plasma-cell", name="Plasma Cell", category=ItemCategory.MATERIAL, rarity=Rarity.EPIC),
    CatalogItem(id="item-earth-core", name="Earth Core Fragment", category=ItemCategory.MATERIAL, rarity=Rarity.LEGENDARY),
    CatalogItem(id="item-miner-pick", name="Miner's Pick", category=ItemCategory.TOOL, rarity=Rarity.COMMON),
)

SEED_ACTORS = (
    Actor(
        id="char-demo",
        wallet_address=DEMO_WALLET,
        name="Wanderer",
        level=3,
        health=90,
        energy=60,
        experience=250,
        location_id="loc-rust-flats",
        status=ActorStatus.ACTIVE,
    ),
)
