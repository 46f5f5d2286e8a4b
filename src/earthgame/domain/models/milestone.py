from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, FrozenSet, Optional, Tuple, Union


class TriggerKind(str, Enum):
    LEVEL = "level"
    LOCATION = "location"
    ITEM = "item"
    ACTION = "action"
    TIME = "time"
    MANUAL = "manual"


class MilestoneState(str, Enum):
    NOT_TRIGGERED = "not_triggered"
    SHOWN = "shown"
    COMPLETED = "completed"


@dataclass(frozen=True)
class LevelCondition:
    threshold: int


@dataclass(frozen=True)
class LocationCondition:
    location_id: str


@dataclass(frozen=True)
class ItemCondition:
    # None matches any acquired item; an empty category set matches every category.
    item_id: Optional[str] = None
    categories: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ActionCondition:
    action: str


@dataclass(frozen=True)
class TimeCondition:
    not_before: datetime


@dataclass(frozen=True)
class ManualCondition:
    pass


TriggerCondition = Union[
    LevelCondition,
    LocationCondition,
    ItemCondition,
    ActionCondition,
    TimeCondition,
    ManualCondition,
]


@dataclass(frozen=True)
class StoryChoice:
    text: str
    effect: Optional[Callable[[], None]] = None
    variant: str = "default"


@dataclass(frozen=True)
class StoryScreen:
    content: str
    title: Optional[str] = None
    continue_text: str = "CONTINUE"
    choices: Tuple[StoryChoice, ...] = ()
    can_dismiss: bool = True
    on_continue: Optional[Callable[[], None]] = None

    @property
    def is_choice(self) -> bool:
        return bool(self.choices)


@dataclass(frozen=True)
class Milestone:
    id: str
    title: str
    trigger: TriggerKind
    screens: Tuple[StoryScreen, ...]
    condition: Optional[TriggerCondition] = None
    one_time: bool = False
    prerequisites: FrozenSet[str] = field(default_factory=frozenset)


def text_screen(content: str, title: str | None = None) -> StoryScreen:
    return StoryScreen(content=content, title=title, continue_text="CONTINUE")


def choice_screen(content: str, choices: list[StoryChoice], title: str | None = None) -> StoryScreen:
    return StoryScreen(content=content, title=title, choices=tuple(choices), can_dismiss=False)


def final_screen(
    content: str,
    title: str | None = None,
    on_complete: Callable[[], None] | None = None,
) -> StoryScreen:
    return StoryScreen(content=content, title=title, continue_text="UNDERSTOOD", on_continue=on_complete)
