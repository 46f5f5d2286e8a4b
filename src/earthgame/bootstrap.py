import logging
import os
from dataclasses import dataclass
from typing import Callable

from earthgame.application.services.action_resolver import ActionResolver
from earthgame.application.services.completion_set import CompletionSet
from earthgame.application.services.event_bus import EventBus
from earthgame.application.services.milestone_catalog import build_default_milestones
from earthgame.application.services.milestone_engine import (
    MilestoneEngine,
    MilestonePresenter,
    register_milestone_handlers,
)
from earthgame.application.services.seed_policy import RngFactory, seeded_rng_factory, system_rng_factory
from earthgame.domain.repositories import (
    ActorRepository,
    InventoryRepository,
    KeyValueStore,
    LocationRepository,
    TransactionRepository,
)
from earthgame.infrastructure.inmemory.atomic_persistence import create_inmemory_atomic_persistor
from earthgame.infrastructure.inmemory.repos import (
    InMemoryActorRepository,
    InMemoryInventoryRepository,
    InMemoryItemCatalogRepository,
    InMemoryLocationRepository,
    InMemoryTransactionRepository,
)
from earthgame.infrastructure.inmemory.seed_world import SEED_ACTORS, SEED_ITEMS, SEED_LOCATIONS
from earthgame.infrastructure.kv_store import JsonFileKeyValueStore


logger = logging.getLogger(__name__)

DEFAULT_STORY_STORE = ".earth_story_progress.json"


@dataclass
class GameServices:
    resolver: ActionResolver
    event_bus: EventBus
    actor_repo: ActorRepository
    location_repo: LocationRepository
    inventory_repo: InventoryRepository
    transaction_repo: TransactionRepository


def _rng_factory_from_env() -> RngFactory:
    raw = os.getenv("EARTH_RNG_SEED", "").strip()
    if not raw:
        return system_rng_factory
    try:
        return seeded_rng_factory(int(raw))
    except ValueError:
        logger.warning("EARTH_RNG_SEED is not an integer; using system randomness", extra={"value": raw})
        return system_rng_factory


def _conflict_retries_from_env() -> int:
    raw = os.getenv("EARTH_CONFLICT_RETRIES", "1").strip() or "1"
    try:
        return max(0, int(raw))
    except ValueError:
        logger.warning("EARTH_CONFLICT_RETRIES is not an integer; using 1", extra={"value": raw})
        return 1


def _build_inmemory_services(event_bus: EventBus) -> GameServices:
    actor_repo = InMemoryActorRepository(SEED_ACTORS)
    location_repo = InMemoryLocationRepository(SEED_LOCATIONS)
    item_repo = InMemoryItemCatalogRepository(SEED_ITEMS)
    inventory_repo = InMemoryInventoryRepository()
    transaction_repo = InMemoryTransactionRepository()
    resolver = ActionResolver(
        actor_repo,
        location_repo,
        item_repo,
        inventory_repo,
        transaction_repo,
        create_inmemory_atomic_persistor(actor_repo, inventory_repo, transaction_repo),
        rng_factory=_rng_factory_from_env(),
        event_bus=event_bus,
        max_conflict_retries=_conflict_retries_from_env(),
    )
    return GameServices(resolver, event_bus, actor_repo, location_repo, inventory_repo, transaction_repo)


def _build_sql_services(event_bus: EventBus) -> GameServices:
    from earthgame.infrastructure.db.sql.atomic_persistence import save_action_atomic
    from earthgame.infrastructure.db.sql.repos import (
        SqlActorRepository,
        SqlInventoryRepository,
        SqlItemCatalogRepository,
        SqlLocationRepository,
        SqlTransactionRepository,
    )

    actor_repo = SqlActorRepository()
    location_repo = SqlLocationRepository()
    inventory_repo = SqlInventoryRepository()
    transaction_repo = SqlTransactionRepository()
    resolver = ActionResolver(
        actor_repo,
        location_repo,
        SqlItemCatalogRepository(),
        inventory_repo,
        transaction_repo,
        save_action_atomic,
        rng_factory=_rng_factory_from_env(),
        event_bus=event_bus,
        max_conflict_retries=_conflict_retries_from_env(),
    )
    return GameServices(resolver, event_bus, actor_repo, location_repo, inventory_repo, transaction_repo)


def create_game_services(event_bus: EventBus | None = None) -> GameServices:
    bus = event_bus or EventBus()
    if os.getenv("EARTH_DATABASE_URL", "").strip():
        return _build_sql_services(bus)
    return _build_inmemory_services(bus)


def create_action_resolver() -> ActionResolver:
    return create_game_services().resolver


def create_story_store(path: str | None = None) -> KeyValueStore:
    return JsonFileKeyValueStore(path or os.getenv("EARTH_STORY_STORE", "").strip() or DEFAULT_STORY_STORE)


def create_milestone_engine(
    presenter: MilestonePresenter,
    *,
    player_id: str | None = None,
    store: KeyValueStore | None = None,
    event_bus: EventBus | None = None,
    on_path_chosen: Callable[[str], None] | None = None,
) -> MilestoneEngine:
    completion_set = CompletionSet(store or create_story_store(), player_id)
    completion_set.load()
    engine = MilestoneEngine(completion_set, presenter, event_bus=event_bus)
    engine.register(build_default_milestones(on_path_chosen))
    if event_bus is not None:
        register_milestone_handlers(event_bus, engine)
    return engine
