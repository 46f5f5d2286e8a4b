from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TransactionRecord:
    """Append-only audit entry for one resolved action."""

    id: str
    actor_id: str
    action_type: str
    item_id: Optional[str]
    quantity: int
    description: str
    energy_cost: int
    created_at: datetime = field(default_factory=_utc_now)

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "character_id": self.actor_id,
            "type": self.action_type,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "description": self.description,
            "energy_burn": self.energy_cost,
            "created_at": self.created_at.isoformat(),
        }
