from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import List, Optional

from earthgame.domain.models.actor import Actor
from earthgame.domain.models.inventory import InventoryLine
from earthgame.domain.models.item import CatalogItem, ItemCategory
from earthgame.domain.models.location import Location
from earthgame.domain.models.transaction import TransactionRecord


# An operation runs inside the persistor's unit of work; it receives the
# backend session (or an in-memory stand-in) and must not commit on its own.
Operation = Callable[[object], None]

# (actor, expected_version, operations) -> committed actor. Raises
# ConcurrencyConflict when the stored version no longer matches.
AtomicActionPersistor = Callable[[Actor, int, Sequence[Operation]], Actor]


class ActorRepository(ABC):
    @abstractmethod
    def get(self, actor_id: str) -> Optional[Actor]:
        raise NotImplementedError

    @abstractmethod
    def get_by_wallet(self, wallet_address: str) -> Optional[Actor]:
        raise NotImplementedError

    @abstractmethod
    def save(self, actor: Actor) -> None:
        raise NotImplementedError


class LocationRepository(ABC):
    @abstractmethod
    def get(self, location_id: str) -> Optional[Location]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[Location]:
        raise NotImplementedError


class ItemCatalogRepository(ABC):
    @abstractmethod
    def get(self, item_id: str) -> Optional[CatalogItem]:
        raise NotImplementedError

    @abstractmethod
    def list_by_category(self, category: ItemCategory) -> List[CatalogItem]:
        raise NotImplementedError


class InventoryRepository(ABC):
    @abstractmethod
    def get_line(self, actor_id: str, item_id: str) -> Optional[InventoryLine]:
        raise NotImplementedError

    @abstractmethod
    def list_for_actor(self, actor_id: str) -> List[InventoryLine]:
        raise NotImplementedError

    @abstractmethod
    def build_add_item_operation(self, *, actor_id: str, item_id: str, quantity: int = 1) -> Operation:
        raise NotImplementedError


class TransactionRepository(ABC):
    @abstractmethod
    def list_for_actor(self, actor_id: str) -> List[TransactionRecord]:
        raise NotImplementedError

    @abstractmethod
    def count_for_actor(self, actor_id: str, action_type: str | None = None) -> int:
        raise NotImplementedError

    @abstractmethod
    def build_append_operation(self, record: TransactionRecord) -> Operation:
        raise NotImplementedError


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError
