from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet


class ActionKind(str, Enum):
    MINE = "MINE"

    @classmethod
    def parse(cls, value: "str | ActionKind | None") -> "ActionKind | None":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().upper()
        return cls.__members__.get(raw)


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    biome: str | None = None
    difficulty: int = 1
    supported_actions: FrozenSet[ActionKind] = field(default_factory=frozenset)

    def supports(self, action: ActionKind) -> bool:
        return action in self.supported_actions

    @property
    def has_mining(self) -> bool:
        return ActionKind.MINE in self.supported_actions
