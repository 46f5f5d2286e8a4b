from dataclasses import dataclass
from typing import Optional


@dataclass
class ActionResolved:
    actor_id: str
    action: str
    location_id: str
    energy_cost: int
    item_id: Optional[str]


@dataclass
class ItemAcquired:
    actor_id: str
    item_id: str
    quantity: int
    level: int
    location_id: Optional[str]
    category: Optional[str] = None


@dataclass
class ActorLevelReached:
    actor_id: str
    level: int


@dataclass
class LocationEntered:
    actor_id: str
    location_id: str
    level: int


@dataclass
class MilestoneCompleted:
    player_id: str
    milestone_id: str
