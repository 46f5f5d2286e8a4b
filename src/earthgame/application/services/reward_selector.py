from __future__ import annotations

import bisect
import math
import random
from typing import Sequence

from earthgame.domain.models.item import CatalogItem, Rarity


BASE_RARITY_WEIGHTS: dict[Rarity, int] = {
    Rarity.COMMON: 60,
    Rarity.UNCOMMON: 25,
    Rarity.RARE: 10,
    Rarity.EPIC: 4,
    Rarity.LEGENDARY: 1,
}

# Share of the level bonus each upper tier receives.
TIER_SCALING: dict[Rarity, float] = {
    Rarity.RARE: 0.3,
    Rarity.EPIC: 0.5,
    Rarity.LEGENDARY: 1.0,
}

LEVEL_BONUS_DIVISOR = 10
LEVEL_BONUS_CAP = 2.0
UNKNOWN_RARITY_WEIGHT = 10


def level_bonus(level: int) -> float:
    return min(max(1, int(level)) / LEVEL_BONUS_DIVISOR, LEVEL_BONUS_CAP)


def rarity_weights(level: int) -> dict[Rarity, int]:
    bonus = level_bonus(level)
    weights: dict[Rarity, int] = {}
    for rarity, base in BASE_RARITY_WEIGHTS.items():
        scaling = TIER_SCALING.get(rarity)
        if scaling is None:
            weights[rarity] = int(base)
        else:
            weights[rarity] = int(math.floor(base * (1 + bonus * scaling)))
    return weights


def item_weight(item: CatalogItem, weights: dict[Rarity, int]) -> int:
    if item.rarity is None:
        return UNKNOWN_RARITY_WEIGHT
    return int(weights.get(item.rarity, UNKNOWN_RARITY_WEIGHT))


def tier_probabilities(catalog: Sequence[CatalogItem], level: int) -> dict[Rarity | None, float]:
    """Expected share of draws per tier for this catalog at the given level."""
    weights = rarity_weights(level)
    totals: dict[Rarity | None, int] = {}
    for item in catalog:
        totals[item.rarity] = totals.get(item.rarity, 0) + item_weight(item, weights)
    grand_total = sum(totals.values())
    if grand_total <= 0:
        return {}
    return {rarity: value / grand_total for rarity, value in totals.items()}


class RewardSelector:
    """Weighted draw over a category catalog, biased toward rare tiers as level grows."""

    def select(
        self,
        catalog: Sequence[CatalogItem],
        level: int,
        rng: random.Random,
    ) -> CatalogItem | None:
        if not catalog:
            return None

        weights = rarity_weights(level)
        cumulative: list[int] = []
        running = 0
        for item in catalog:
            running += max(0, item_weight(item, weights))
            cumulative.append(running)
        if running <= 0:
            return None

        roll = rng.randrange(running)
        index = bisect.bisect_right(cumulative, roll)
        return catalog[index]
