from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional

from earthgame.application.services.completion_set import CompletionSet
from earthgame.application.services.event_bus import EventBus
from earthgame.domain.events import (
    ActionResolved,
    ActorLevelReached,
    ItemAcquired,
    LocationEntered,
    MilestoneCompleted,
)
from earthgame.domain.models.milestone import (
    ActionCondition,
    ItemCondition,
    LevelCondition,
    LocationCondition,
    ManualCondition,
    Milestone,
    MilestoneState,
    TimeCondition,
    TriggerCondition,
    TriggerKind,
)


logger = logging.getLogger(__name__)


class TriggerStatus(str, Enum):
    SHOWN = "shown"
    UNKNOWN_MILESTONE = "unknown_milestone"
    ALREADY_COMPLETED = "already_completed"
    ALREADY_SHOWN = "already_shown"
    PREREQUISITES_UNMET = "prerequisites_unmet"
    CONDITION_UNMET = "condition_unmet"
    PRESENTATION_FAILED = "presentation_failed"


@dataclass(frozen=True)
class TriggerResult:
    milestone_id: str
    status: TriggerStatus
    missing_prerequisites: FrozenSet[str] = frozenset()

    @property
    def fired(self) -> bool:
        return self.status is TriggerStatus.SHOWN

    def __bool__(self) -> bool:
        return self.fired


@dataclass(frozen=True)
class TriggerContext:
    level: Optional[int] = None
    location_id: Optional[str] = None
    item_ids: FrozenSet[str] = field(default_factory=frozenset)
    item_categories: FrozenSet[str] = field(default_factory=frozenset)
    action: Optional[str] = None
    now: Optional[datetime] = None


class MilestonePresenter(ABC):
    @abstractmethod
    def present(self, milestone: Milestone, on_complete: Callable[[], None]) -> None:
        """Show the milestone screens; call ``on_complete`` once the last screen is continued."""
        raise NotImplementedError


def _level_met(condition: LevelCondition, context: TriggerContext) -> bool:
    return context.level is not None and int(context.level) >= int(condition.threshold)


def _location_met(condition: LocationCondition, context: TriggerContext) -> bool:
    return context.location_id is not None and str(context.location_id) == str(condition.location_id)


def _item_met(condition: ItemCondition, context: TriggerContext) -> bool:
    if condition.categories:
        wanted = {str(category).upper() for category in condition.categories}
        if not wanted & {str(category).upper() for category in context.item_categories}:
            return False
    if condition.item_id is None:
        return bool(context.item_ids)
    return str(condition.item_id) in context.item_ids


def _action_met(condition: ActionCondition, context: TriggerContext) -> bool:
    return context.action is not None and str(context.action).upper() == str(condition.action).upper()


def _time_met(condition: TimeCondition, context: TriggerContext) -> bool:
    # Naive datetimes are read as UTC.
    not_before = condition.not_before
    if not_before.tzinfo is None:
        not_before = not_before.replace(tzinfo=timezone.utc)
    now = context.now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now >= not_before


def _manual_met(_condition: ManualCondition, _context: TriggerContext) -> bool:
    return True


_CONDITION_EVALUATORS: dict[type, Callable[..., bool]] = {
    LevelCondition: _level_met,
    LocationCondition: _location_met,
    ItemCondition: _item_met,
    ActionCondition: _action_met,
    TimeCondition: _time_met,
    ManualCondition: _manual_met,
}


def condition_satisfied(condition: TriggerCondition | None, context: TriggerContext) -> bool:
    if condition is None:
        return True
    evaluator = _CONDITION_EVALUATORS.get(type(condition))
    if evaluator is None:
        logger.warning("No evaluator for trigger condition", extra={"condition": type(condition).__name__})
        return False
    return bool(evaluator(condition, context))


class MilestoneEngine:
    """Gates one-shot narrative milestones behind conditions and prerequisites.

    Per milestone the state moves NOT_TRIGGERED -> SHOWN -> COMPLETED. Missing
    or malformed content never raises; every refusal is reported through a
    ``TriggerStatus`` instead.

    ``trigger`` called without a context is a manual invocation and skips the
    milestone's own condition; prerequisites and one-time gating still apply.
    """

    def __init__(
        self,
        completion_set: CompletionSet,
        presenter: MilestonePresenter,
        *,
        event_bus: EventBus | None = None,
    ) -> None:
        self.completion_set = completion_set
        self.presenter = presenter
        self.event_bus = event_bus
        self._milestones: dict[str, Milestone] = {}
        # Milestone id -> token of the presentation currently on screen.
        self._shown: dict[str, threading.Event] = {}
        self._lock = threading.RLock()

    @property
    def player_id(self) -> str | None:
        return self.completion_set.player_id

    def register(self, milestones: Iterable[Milestone]) -> List[str]:
        registered: list[str] = []
        with self._lock:
            for milestone in milestones:
                if milestone.id in self._milestones:
                    logger.warning("Duplicate milestone id ignored", extra={"milestone_id": milestone.id})
                    continue
                self._milestones[milestone.id] = milestone
                registered.append(milestone.id)
            self._report_graph_problems()
        return registered

    def get(self, milestone_id: str) -> Milestone | None:
        with self._lock:
            return self._milestones.get(str(milestone_id))

    def milestones(self) -> List[Milestone]:
        with self._lock:
            return list(self._milestones.values())

    def is_completed(self, milestone_id: str) -> bool:
        return str(milestone_id) in self.completion_set

    def state_of(self, milestone_id: str) -> MilestoneState | None:
        key = str(milestone_id)
        with self._lock:
            if key not in self._milestones:
                return None
            if key in self._shown:
                return MilestoneState.SHOWN
        if self.is_completed(key):
            return MilestoneState.COMPLETED
        return MilestoneState.NOT_TRIGGERED

    def check_and_trigger(self, milestone_id: str, context: TriggerContext | None = None) -> bool:
        return self.trigger(milestone_id, context).fired

    def trigger(self, milestone_id: str, context: TriggerContext | None = None) -> TriggerResult:
        key = str(milestone_id)
        with self._lock:
            milestone = self._milestones.get(key)
            if milestone is None:
                return self._refuse(key, TriggerStatus.UNKNOWN_MILESTONE)
            status, missing = self._gate(milestone, context)
            if status is not None:
                return self._refuse(key, status, missing)
            token = threading.Event()
            self._shown[key] = token

        try:
            self.presenter.present(milestone, self._completion_callback(milestone, token))
        except Exception:
            logger.exception("Milestone presentation failed", extra={"milestone_id": key})
            with self._lock:
                if self._shown.get(key) is token:
                    del self._shown[key]
            if not token.is_set():
                return TriggerResult(key, TriggerStatus.PRESENTATION_FAILED)

        logger.info("Milestone shown", extra={"milestone_id": key, "player_id": self.player_id})
        return TriggerResult(key, TriggerStatus.SHOWN)

    def dismiss(self, milestone_id: str) -> bool:
        """Return a shown milestone to NOT_TRIGGERED without completing it."""
        with self._lock:
            return self._shown.pop(str(milestone_id), None) is not None

    def available(self, context: TriggerContext | None = None) -> List[Milestone]:
        with self._lock:
            return [milestone for milestone in self._milestones.values() if self._gate(milestone, context)[0] is None]

    def trigger_matching(self, kind: TriggerKind, context: TriggerContext) -> List[TriggerResult]:
        with self._lock:
            candidates = [milestone.id for milestone in self._milestones.values() if milestone.trigger is kind]
        return [self.trigger(milestone_id, context) for milestone_id in candidates]

    def _gate(
        self,
        milestone: Milestone,
        context: TriggerContext | None,
    ) -> tuple[TriggerStatus | None, FrozenSet[str]]:
        if milestone.one_time and self.is_completed(milestone.id):
            return TriggerStatus.ALREADY_COMPLETED, frozenset()
        if milestone.id in self._shown:
            return TriggerStatus.ALREADY_SHOWN, frozenset()
        missing = frozenset(prereq for prereq in milestone.prerequisites if not self.is_completed(prereq))
        if missing:
            return TriggerStatus.PREREQUISITES_UNMET, missing
        if context is not None and not condition_satisfied(milestone.condition, context):
            return TriggerStatus.CONDITION_UNMET, frozenset()
        return None, frozenset()

    @staticmethod
    def _refuse(milestone_id: str, status: TriggerStatus, missing: FrozenSet[str] = frozenset()) -> TriggerResult:
        logger.debug("Milestone not triggered", extra={"milestone_id": milestone_id, "status": status.value})
        return TriggerResult(milestone_id, status, missing)

    def _completion_callback(self, milestone: Milestone, token: threading.Event) -> Callable[[], None]:
        def _on_complete() -> None:
            with self._lock:
                # Only the presentation still on screen may complete the milestone.
                if token.is_set() or self._shown.get(milestone.id) is not token:
                    logger.debug("Stale milestone completion ignored", extra={"milestone_id": milestone.id})
                    return
                token.set()
                del self._shown[milestone.id]
                try:
                    self.completion_set.add(milestone.id)
                except Exception:
                    logger.exception("Failed to persist milestone completion", extra={"milestone_id": milestone.id})
            logger.info("Milestone completed", extra={"milestone_id": milestone.id, "player_id": self.player_id})
            if self.event_bus is not None:
                self.event_bus.publish(MilestoneCompleted(player_id=str(self.player_id or ""), milestone_id=milestone.id))

        return _on_complete

    def _report_graph_problems(self) -> None:
        for milestone in self._milestones.values():
            unknown = sorted(prereq for prereq in milestone.prerequisites if prereq not in self._milestones)
            if unknown:
                logger.warning(
                    "Milestone has unregistered prerequisites and may be unreachable",
                    extra={"milestone_id": milestone.id, "unknown": unknown},
                )

        visiting: set[str] = set()
        done: set[str] = set()

        def _visit(node: str, path: list[str]) -> None:
            if node in done or node not in self._milestones:
                return
            if node in visiting:
                cycle = path[path.index(node):] + [node]
                logger.warning("Milestone prerequisite cycle detected", extra={"cycle": cycle})
                return
            visiting.add(node)
            for prereq in sorted(self._milestones[node].prerequisites):
                _visit(prereq, path + [node])
            visiting.discard(node)
            done.add(node)

        for milestone_id in list(self._milestones):
            _visit(milestone_id, [])


def register_milestone_handlers(event_bus: EventBus, engine: MilestoneEngine) -> Callable[[], None]:
    """Route game-loop events for the engine's player to matching milestones.

    Returns a function that unsubscribes every handler registered here.
    """

    def _mine(actor_id: str) -> bool:
        return engine.player_id is None or str(actor_id) == engine.player_id

    def _on_item(event: ItemAcquired) -> None:
        if _mine(event.actor_id):
            engine.trigger_matching(
                TriggerKind.ITEM,
                TriggerContext(
                    level=event.level,
                    location_id=event.location_id,
                    item_ids=frozenset({event.item_id}),
                    item_categories=frozenset({event.category}) if event.category else frozenset(),
                ),
            )

    def _on_level(event: ActorLevelReached) -> None:
        if _mine(event.actor_id):
            engine.trigger_matching(TriggerKind.LEVEL, TriggerContext(level=event.level))

    def _on_location(event: LocationEntered) -> None:
        if _mine(event.actor_id):
            engine.trigger_matching(TriggerKind.LOCATION, TriggerContext(level=event.level, location_id=event.location_id))

    def _on_action(event: ActionResolved) -> None:
        if _mine(event.actor_id):
            engine.trigger_matching(TriggerKind.ACTION, TriggerContext(location_id=event.location_id, action=event.action))

    subscriptions = (
        (ItemAcquired, _on_item),
        (ActorLevelReached, _on_level),
        (LocationEntered, _on_location),
        (ActionResolved, _on_action),
    )
    for event_type, handler in subscriptions:
        event_bus.subscribe(event_type, handler, priority=80)

    def _detach() -> None:
        for event_type, handler in subscriptions:
            event_bus.unsubscribe(event_type, handler)

    return _detach
