from dataclasses import dataclass
from enum import Enum, IntEnum


class Rarity(IntEnum):
    COMMON = 1
    UNCOMMON = 2
    RARE = 3
    EPIC = 4
    LEGENDARY = 5

    @classmethod
    def parse(cls, value: "str | int | Rarity | None") -> "Rarity | None":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        raw = str(value or "").strip().upper()
        return cls.__members__.get(raw)


class ItemCategory(str, Enum):
    CLOTHING = "CLOTHING"
    HAT = "HAT"
    ACCESSORY = "ACCESSORY"
    TOOL = "TOOL"
    CONSUMABLE = "CONSUMABLE"
    MATERIAL = "MATERIAL"


@dataclass(frozen=True)
class CatalogItem:
    id: str
    name: str
    category: ItemCategory
    rarity: Rarity | None
    description: str = ""

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "rarity": self.rarity.name if self.rarity is not None else None,
            "description": self.description,
        }
