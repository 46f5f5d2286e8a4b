from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Callable, TypeVar

from earthgame.application.dtos import ActionOutcome, ActorStatsView, FoundItem
from earthgame.application.services.event_bus import EventBus
from earthgame.application.services.reward_selector import RewardSelector
from earthgame.application.services.seed_policy import RngFactory, system_rng_factory
from earthgame.application.services.stat_formulas import (
    BASE_ACTION_COST,
    action_cost,
    efficiency_reduction,
    health_status,
    is_injured,
    resource_capacity,
    success_probability,
    success_rate_percent,
)
from earthgame.domain.errors import (
    ActionError,
    ActionUnavailable,
    ConcurrencyConflict,
    InsufficientResource,
    InvalidArgument,
    NotFound,
    StorageError,
)
from earthgame.domain.events import ActionResolved, ItemAcquired
from earthgame.domain.models.actor import Actor
from earthgame.domain.models.item import CatalogItem, ItemCategory
from earthgame.domain.models.location import ActionKind, Location
from earthgame.domain.models.transaction import TransactionRecord
from earthgame.domain.repositories import (
    ActorRepository,
    AtomicActionPersistor,
    InventoryRepository,
    ItemCatalogRepository,
    LocationRepository,
    Operation,
    TransactionRepository,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ActionProfile:
    kind: ActionKind
    reward_category: ItemCategory
    transaction_type: str
    verb: str
    past_tense: str
    activity: str


ACTION_PROFILES: dict[ActionKind, ActionProfile] = {
    ActionKind.MINE: ActionProfile(
        kind=ActionKind.MINE,
        reward_category=ItemCategory.MATERIAL,
        transaction_type="MINE",
        verb="mine",
        past_tense="mined",
        activity="Mining",
    ),
}


def _new_transaction_id() -> str:
    return str(uuid.uuid4())


class ActionResolver:
    """Resolves one resource-gathering attempt from precondition checks to commit."""

    def __init__(
        self,
        actor_repo: ActorRepository,
        location_repo: LocationRepository,
        item_repo: ItemCatalogRepository,
        inventory_repo: InventoryRepository,
        transaction_repo: TransactionRepository,
        atomic_persistor: AtomicActionPersistor,
        *,
        reward_selector: RewardSelector | None = None,
        rng_factory: RngFactory | None = None,
        event_bus: EventBus | None = None,
        max_conflict_retries: int = 1,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.actor_repo = actor_repo
        self.location_repo = location_repo
        self.item_repo = item_repo
        self.inventory_repo = inventory_repo
        self.transaction_repo = transaction_repo
        self.atomic_persistor = atomic_persistor
        self.reward_selector = reward_selector or RewardSelector()
        self.rng_factory = rng_factory or system_rng_factory
        self.event_bus = event_bus
        self.max_conflict_retries = max(0, int(max_conflict_retries))
        self.id_factory = id_factory or _new_transaction_id

    def resolve_action(
        self,
        wallet_address: str | None,
        location_id: str | None = None,
        action: ActionKind | str = ActionKind.MINE,
    ) -> ActionOutcome:
        wallet = str(wallet_address or "").strip()
        if not wallet:
            raise InvalidArgument("Wallet address is required")
        kind = ActionKind.parse(action)
        profile = ACTION_PROFILES.get(kind) if kind is not None else None
        if profile is None:
            raise InvalidArgument(f"Unknown action: {action}")
        target = str(location_id).strip() if location_id is not None else None

        conflicts = 0
        while True:
            try:
                outcome, location = self._attempt(wallet, target or None, profile)
                break
            except ConcurrencyConflict:
                conflicts += 1
                if conflicts > self.max_conflict_retries:
                    logger.warning(
                        "Actor changed concurrently; giving up",
                        extra={"wallet_address": wallet, "conflicts": conflicts},
                    )
                    raise
                logger.info(
                    "Actor changed concurrently; recomputing",
                    extra={"wallet_address": wallet, "conflicts": conflicts},
                )

        logger.info(
            "Action resolved",
            extra={
                "actor_id": outcome.actor.id,
                "action": profile.kind.value,
                "location_id": location.id,
                "energy_cost": outcome.cost,
                "item_id": outcome.found.item.id if outcome.found else None,
            },
        )
        self._publish(outcome, location, profile)
        return outcome

    def stats(self, wallet_address: str | None) -> ActorStatsView:
        wallet = str(wallet_address or "").strip()
        if not wallet:
            raise InvalidArgument("Wallet address is required")
        actor = self._load_active_actor(wallet)
        return ActorStatsView(
            actor_id=str(actor.id),
            name=actor.name,
            level=actor.level,
            health=actor.health,
            energy=actor.energy,
            experience=actor.experience,
            cost=action_cost(actor),
            capacity=resource_capacity(actor),
            success_rate_percent=success_rate_percent(success_probability(actor)),
            health_status=health_status(actor),
        )

    def _attempt(self, wallet: str, location_id: str | None, profile: ActionProfile) -> tuple[ActionOutcome, Location]:
        actor = self._load_active_actor(wallet)

        cost = action_cost(actor)
        capacity = resource_capacity(actor)
        if actor.energy < cost:
            logger.info(
                "Action rejected for insufficient energy",
                extra={"actor_id": actor.id, "energy": actor.energy, "energy_cost": cost},
            )
            raise InsufficientResource(
                f"You need at least {cost} energy to {profile.verb}. Current: {actor.energy}",
                cost=cost,
                capacity=capacity,
                energy=actor.energy,
                health_status=health_status(actor),
            )

        target_id = location_id or actor.location_id
        location = self._storage_call(self.location_repo.get, target_id) if target_id else None
        if location is None:
            raise NotFound("Location not found", locationId=target_id)
        if not location.supports(profile.kind):
            raise ActionUnavailable(
                f"{profile.activity} is not available in {location.name}",
                locationId=location.id,
            )

        probability = success_probability(actor)
        percent = success_rate_percent(probability)
        rng = self.rng_factory(actor, profile.kind.value)
        item: CatalogItem | None = None
        if rng.random() < probability:
            catalog = self._storage_call(self.item_repo.list_by_category, profile.reward_category)
            item = self.reward_selector.select(catalog, actor.level, rng)

        debited = replace(actor, energy=actor.energy - cost)
        record = TransactionRecord(
            id=self.id_factory(),
            actor_id=str(actor.id),
            action_type=profile.transaction_type,
            item_id=item.id if item is not None else None,
            quantity=1 if item is not None else 0,
            description=self._describe(profile, location, item, cost, percent),
            energy_cost=cost,
        )
        operations: list[Operation] = []
        if item is not None:
            operations.append(self.inventory_repo.build_add_item_operation(actor_id=str(actor.id), item_id=item.id, quantity=1))
        operations.append(self.transaction_repo.build_append_operation(record))

        committed = self._commit(debited, actor.version, operations)

        if item is not None:
            message = f"Successfully {profile.past_tense} {item.name}! Energy cost: {cost}"
        else:
            rate_note = "increased due to system damage" if is_injured(actor) else "standard rate"
            message = f"No resources found this time. Energy cost: {cost} ({rate_note})"

        outcome = ActionOutcome(
            actor=committed,
            found=FoundItem(item=item, quantity=1) if item is not None else None,
            cost=cost,
            capacity=capacity,
            success_rate_percent=percent,
            message=message,
            transaction=record,
            details={
                "baseCost": BASE_ACTION_COST,
                "actualCost": cost,
                "levelEfficiency": efficiency_reduction(actor),
                "healthPenalty": is_injured(actor),
                "successRate": percent,
                "maxEnergy": capacity,
            },
        )
        return outcome, location

    def _load_active_actor(self, wallet: str) -> Actor:
        actor = self._storage_call(self.actor_repo.get_by_wallet, wallet)
        if actor is None or not actor.is_active:
            raise NotFound("No active character found for this wallet address")
        return actor

    @staticmethod
    def _describe(
        profile: ActionProfile,
        location: Location,
        item: CatalogItem | None,
        cost: int,
        percent: int,
    ) -> str:
        suffix = f"(Cost: {cost} energy, Success Rate: {percent}%)"
        if item is not None:
            return f"{profile.past_tense.capitalize()} {item.name} at {location.name} {suffix}"
        return f"{profile.activity} at {location.name} found nothing {suffix}"

    def _commit(self, actor: Actor, expected_version: int, operations: list[Operation]) -> Actor:
        try:
            return self.atomic_persistor(actor, expected_version, operations)
        except ActionError:
            raise
        except Exception as exc:
            logger.exception("Action commit failed", extra={"actor_id": actor.id})
            raise StorageError(f"Failed to persist action: {exc}") from exc

    @staticmethod
    def _storage_call(fn: Callable[..., T], *args: object) -> T:
        try:
            return fn(*args)
        except ActionError:
            raise
        except Exception as exc:
            raise StorageError(f"Storage read failed: {exc}") from exc

    def _publish(self, outcome: ActionOutcome, location: Location, profile: ActionProfile) -> None:
        if self.event_bus is None:
            return
        actor = outcome.actor
        self.event_bus.publish(
            ActionResolved(
                actor_id=str(actor.id),
                action=profile.kind.value,
                location_id=location.id,
                energy_cost=outcome.cost,
                item_id=outcome.found.item.id if outcome.found else None,
            )
        )
        if outcome.found is not None:
            self.event_bus.publish(
                ItemAcquired(
                    actor_id=str(actor.id),
                    item_id=outcome.found.item.id,
                    quantity=outcome.found.quantity,
                    level=actor.level,
                    location_id=location.id,
                    category=outcome.found.item.category.value,
                )
            )
