from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class ActorStatus(str, Enum):
    ACTIVE = "ACTIVE"
    BANNED = "BANNED"
    PENDING = "PENDING"
    INACTIVE = "INACTIVE"

    @classmethod
    def normalize(cls, value: str | None) -> "ActorStatus":
        raw = str(value or "").strip().upper()
        valid = {item.value: item for item in cls}
        return valid.get(raw, cls.PENDING)


@dataclass
class Actor:
    id: Optional[str]
    wallet_address: str
    name: str = ""
    level: int = 1
    health: int = 100
    energy: int = 100
    experience: int = 0
    location_id: Optional[str] = None
    status: ActorStatus = ActorStatus.ACTIVE
    coins: int = 0
    version: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.status, ActorStatus):
            self.status = ActorStatus.normalize(self.status)
        try:
            self.level = max(1, int(self.level or 1))
        except Exception:
            self.level = 1
        self.health = max(0, min(100, int(self.health or 0)))
        self.energy = max(0, int(self.energy or 0))
        self.experience = max(0, int(self.experience or 0))
        self.version = max(0, int(self.version or 0))

    @property
    def is_active(self) -> bool:
        return self.status is ActorStatus.ACTIVE

    def snapshot(self) -> "Actor":
        return replace(self)

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "wallet_address": self.wallet_address,
            "name": self.name,
            "level": self.level,
            "health": self.health,
            "energy": self.energy,
            "experience": self.experience,
            "current_location_id": self.location_id,
            "status": self.status.value,
            "coins": self.coins,
            "current_version": self.version,
        }
