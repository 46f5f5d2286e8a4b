from dataclasses import dataclass, field
from typing import Dict, Optional

from earthgame.domain.models.actor import Actor
from earthgame.domain.models.item import CatalogItem
from earthgame.domain.models.transaction import TransactionRecord


@dataclass(frozen=True)
class FoundItem:
    item: CatalogItem
    quantity: int = 1

    def to_payload(self) -> dict[str, object]:
        return {"item": self.item.to_payload(), "quantity": self.quantity}


@dataclass
class ActionOutcome:
    actor: Actor
    found: Optional[FoundItem]
    cost: int
    capacity: int
    success_rate_percent: int
    message: str
    transaction: Optional[TransactionRecord] = None
    details: Dict[str, object] = field(default_factory=dict)
    success: bool = True

    def to_payload(self) -> dict[str, object]:
        return {
            "success": self.success,
            "actor": self.actor.to_payload(),
            "found": self.found.to_payload() if self.found is not None else None,
            "cost": self.cost,
            "successRatePercent": self.success_rate_percent,
            "message": self.message,
            "transaction": self.transaction.to_payload() if self.transaction is not None else None,
            "details": dict(self.details),
        }


@dataclass
class ActorStatsView:
    actor_id: str
    name: str
    level: int
    health: int
    energy: int
    experience: int
    cost: int
    capacity: int
    success_rate_percent: int
    health_status: str
