from typing import Dict, Iterable, List, Optional
import uuid

from earthgame.domain.models.actor import Actor
from earthgame.domain.models.inventory import InventoryLine
from earthgame.domain.models.item import CatalogItem, ItemCategory, Rarity
from earthgame.domain.models.location import Location
from earthgame.domain.models.transaction import TransactionRecord
from earthgame.domain.repositories import (
    ActorRepository,
    InventoryRepository,
    ItemCatalogRepository,
    LocationRepository,
    Operation,
    TransactionRepository,
)


class InMemoryActorRepository(ActorRepository):
    def __init__(self, actors: Iterable[Actor] = ()) -> None:
        self._actors: Dict[str, Actor] = {str(actor.id): actor.snapshot() for actor in actors}

    def get(self, actor_id: str) -> Optional[Actor]:
        actor = self._actors.get(str(actor_id))
        return actor.snapshot() if actor is not None else None

    def get_by_wallet(self, wallet_address: str) -> Optional[Actor]:
        matches = [actor for actor in self._actors.values() if actor.wallet_address == wallet_address]
        active = [actor for actor in matches if actor.is_active]
        chosen = (active or matches or [None])[0]
        return chosen.snapshot() if chosen is not None else None

    def save(self, actor: Actor) -> None:
        self._actors[str(actor.id)] = actor.snapshot()

    def compare_and_set(self, actor: Actor, expected_version: int) -> Optional[Actor]:
        stored = self._actors.get(str(actor.id))
        if stored is None or int(stored.version) != int(expected_version):
            return None
        committed = actor.snapshot()
        committed.version = int(expected_version) + 1
        self._actors[str(actor.id)] = committed
        return committed.snapshot()


class InMemoryLocationRepository(LocationRepository):
    def __init__(self, locations: Iterable[Location] = ()) -> None:
        self._locations: Dict[str, Location] = {location.id: location for location in locations}

    def get(self, location_id: str) -> Optional[Location]:
        return self._locations.get(str(location_id))

    def list_all(self) -> List[Location]:
        return sorted(self._locations.values(), key=lambda location: location.name.lower())


class InMemoryItemCatalogRepository(ItemCatalogRepository):
    def __init__(self, items: Iterable[CatalogItem] = ()) -> None:
        self._items: Dict[str, CatalogItem] = {item.id: item for item in items}

    def get(self, item_id: str) -> Optional[CatalogItem]:
        return self._items.get(str(item_id))

    def list_by_category(self, category: ItemCategory) -> List[CatalogItem]:
        rows = [item for item in self._items.values() if item.category is category]
        return sorted(rows, key=lambda item: (int(item.rarity or Rarity.COMMON), item.id))


class InMemoryInventoryRepository(InventoryRepository):
    def __init__(self) -> None:
        self._lines: Dict[tuple[str, str], InventoryLine] = {}

    def get_line(self, actor_id: str, item_id: str) -> Optional[InventoryLine]:
        return self._lines.get((str(actor_id), str(item_id)))

    def list_for_actor(self, actor_id: str) -> List[InventoryLine]:
        return [line for (owner, _), line in self._lines.items() if owner == str(actor_id)]

    def add_item(self, *, actor_id: str, item_id: str, quantity: int = 1) -> InventoryLine:
        key = (str(actor_id), str(item_id))
        existing = self._lines.get(key)
        if existing is not None:
            existing.quantity += max(1, int(quantity))
            return existing
        line = InventoryLine(id=str(uuid.uuid4()), actor_id=key[0], item_id=key[1], quantity=quantity)
        self._lines[key] = line
        return line

    def build_add_item_operation(self, *, actor_id: str, item_id: str, quantity: int = 1) -> Operation:
        def _operation(_session: object) -> None:
            self.add_item(actor_id=actor_id, item_id=item_id, quantity=quantity)

        return _operation


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self) -> None:
        self._records: List[TransactionRecord] = []

    def list_for_actor(self, actor_id: str) -> List[TransactionRecord]:
        return [record for record in self._records if record.actor_id == str(actor_id)]

    def count_for_actor(self, actor_id: str, action_type: str | None = None) -> int:
        return sum(
            1
            for record in self._records
            if record.actor_id == str(actor_id) and (action_type is None or record.action_type == action_type)
        )

    def append(self, record: TransactionRecord) -> None:
        if any(existing.id == record.id for existing in self._records):
            raise ValueError(f"Transaction {record.id} already recorded")
        self._records.append(record)

    def build_append_operation(self, record: TransactionRecord) -> Operation:
        def _operation(_session: object) -> None:
            self.append(record)

        return _operation
