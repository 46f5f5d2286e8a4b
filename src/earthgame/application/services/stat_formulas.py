from __future__ import annotations

import math

from earthgame.domain.models.actor import Actor


BASE_ACTION_COST = 10
MIN_ACTION_COST = 5
EFFICIENCY_LEVEL_STEP = 5
INJURY_THRESHOLD = 50
INJURED_COST_MULTIPLIER = 1.5

BASE_CAPACITY = 100
CAPACITY_PER_LEVEL = 15
CAPACITY_HEALTH_FACTOR = 50
CAPACITY_EXPERIENCE_DIVISOR = 100
CAPACITY_EXPERIENCE_CAP = 50

BASE_SUCCESS_RATE = 0.7
SUCCESS_PER_LEVEL = 0.01
SUCCESS_LEVEL_CAP = 0.20
SUCCESS_EXPERIENCE_DIVISOR = 10_000
SUCCESS_EXPERIENCE_CAP = 0.05
INJURED_SUCCESS_PENALTY = 0.1
SUCCESS_RATE_FLOOR = 0.3
SUCCESS_RATE_CEILING = 1.0

HEALTH_STATUS_DAMAGED = "DAMAGED_SYSTEMS_INCREASE_COST"
HEALTH_STATUS_OPTIMAL = "OPTIMAL"


def is_injured(actor: Actor) -> bool:
    return int(actor.health) < INJURY_THRESHOLD


def efficiency_reduction(actor: Actor) -> int:
    return max(1, int(actor.level)) // EFFICIENCY_LEVEL_STEP


def action_cost(actor: Actor) -> int:
    """Energy charged for one action; higher levels are cheaper, injuries cost more."""
    multiplier = INJURED_COST_MULTIPLIER if is_injured(actor) else 1.0
    raw = math.floor((BASE_ACTION_COST - efficiency_reduction(actor)) * multiplier)
    return max(int(raw), MIN_ACTION_COST)


def resource_capacity(actor: Actor) -> int:
    tech_upgrades = max(1, int(actor.level)) * CAPACITY_PER_LEVEL
    health_efficiency = (max(0, min(100, int(actor.health))) / 100) * CAPACITY_HEALTH_FACTOR
    optimization = min(max(0, int(actor.experience)) / CAPACITY_EXPERIENCE_DIVISOR, CAPACITY_EXPERIENCE_CAP)
    return int(math.floor(BASE_CAPACITY + tech_upgrades + health_efficiency + optimization))


def success_probability(actor: Actor) -> float:
    level_bonus = min(max(1, int(actor.level)) * SUCCESS_PER_LEVEL, SUCCESS_LEVEL_CAP)
    experience_bonus = min(max(0, int(actor.experience)) / SUCCESS_EXPERIENCE_DIVISOR, SUCCESS_EXPERIENCE_CAP)
    penalty = INJURED_SUCCESS_PENALTY if is_injured(actor) else 0.0
    rate = BASE_SUCCESS_RATE + level_bonus + experience_bonus - penalty
    return max(SUCCESS_RATE_FLOOR, min(SUCCESS_RATE_CEILING, rate))


def success_rate_percent(probability: float) -> int:
    return int(round(float(probability) * 100))


def health_status(actor: Actor) -> str:
    return HEALTH_STATUS_DAMAGED if is_injured(actor) else HEALTH_STATUS_OPTIMAL
