from dataclasses import dataclass
from typing import Optional


@dataclass
class InventoryLine:
    id: Optional[str]
    actor_id: str
    item_id: str
    quantity: int = 1
    equipped: bool = False

    def __post_init__(self) -> None:
        self.quantity = max(1, int(self.quantity or 1))
