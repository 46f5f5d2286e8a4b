from __future__ import annotations

import logging
from typing import Callable, List

from earthgame.domain.models.item import ItemCategory
from earthgame.domain.models.milestone import (
    ItemCondition,
    LevelCondition,
    ManualCondition,
    Milestone,
    StoryChoice,
    TriggerKind,
    choice_screen,
    final_screen,
    text_screen,
)


logger = logging.getLogger(__name__)

# Gathered materials are not equipment.
EQUIPMENT_CATEGORIES = frozenset(
    category.value for category in ItemCategory if category is not ItemCategory.MATERIAL
)

MOTIVATION_PATHS = (
    ("explorer", "Seek knowledge and discovery"),
    ("merchant", "Build wealth and power"),
    ("social", "Forge alliances and friendships"),
)


def _log_path_choice(path: str) -> None:
    logger.info("Motivation chosen", extra={"path": path})


def build_default_milestones(on_path_chosen: Callable[[str], None] | None = None) -> List[Milestone]:
    record_path = on_path_chosen or _log_path_choice

    def _choose(path: str) -> Callable[[], None]:
        return lambda: record_path(path)

    return [
        Milestone(
            id="welcome",
            title="WELCOME TO EARTH",
            trigger=TriggerKind.MANUAL,
            condition=ManualCondition(),
            one_time=True,
            screens=(
                text_screen(
                    "Welcome, traveler.\n\n"
                    "You have arrived on Earth - a world of endless possibilities and hidden dangers.\n\n"
                    "Your journey begins now.",
                    "SYSTEM INITIALIZATION",
                ),
                choice_screen(
                    "What drives you to explore this vast world?",
                    [StoryChoice(text=label, effect=_choose(path)) for path, label in MOTIVATION_PATHS],
                    "CHARACTER MOTIVATION",
                ),
            ),
        ),
        Milestone(
            id="first_level",
            title="LEVEL UP",
            trigger=TriggerKind.LEVEL,
            condition=LevelCondition(threshold=2),
            one_time=True,
            prerequisites=frozenset({"welcome"}),
            screens=(
                text_screen(
                    "Congratulations! You have grown stronger.\n\n"
                    "With each level gained, new areas of Earth become accessible to you.\n\n"
                    "The world expands as your capabilities grow.",
                    "ADVANCEMENT ACHIEVED",
                ),
                final_screen(
                    "Remember: Power without wisdom is dangerous.\n\nChoose your path carefully.",
                    "ANCIENT WARNING",
                ),
            ),
        ),
        Milestone(
            id="equipment_discovery",
            title="FIRST EQUIPMENT",
            trigger=TriggerKind.ITEM,
            condition=ItemCondition(categories=EQUIPMENT_CATEGORIES),
            one_time=True,
            screens=(
                text_screen(
                    "You have discovered your first piece of equipment!\n\n"
                    "Equipment not only changes your appearance but can provide special abilities and protection.\n\n"
                    "Manage your inventory wisely.",
                    "EQUIPMENT DISCOVERED",
                ),
            ),
        ),
    ]
