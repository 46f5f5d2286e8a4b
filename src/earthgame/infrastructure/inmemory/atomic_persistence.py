from __future__ import annotations

import copy
from collections.abc import Sequence
from types import SimpleNamespace

from earthgame.domain.errors import ConcurrencyConflict
from earthgame.domain.models.actor import Actor
from earthgame.domain.repositories import AtomicActionPersistor, Operation
from earthgame.infrastructure.inmemory.repos import (
    InMemoryActorRepository,
    InMemoryInventoryRepository,
    InMemoryTransactionRepository,
)


_INMEMORY_SESSION = SimpleNamespace(bind=SimpleNamespace(dialect=SimpleNamespace(name="inmemory")))


def create_inmemory_atomic_persistor(
    actor_repo: InMemoryActorRepository,
    inventory_repo: InMemoryInventoryRepository,
    transaction_repo: InMemoryTransactionRepository,
) -> AtomicActionPersistor:
    def _persist(actor: Actor, expected_version: int, operations: Sequence[Operation] = ()) -> Actor:
        snapshot = {
            "actors": copy.deepcopy(actor_repo._actors),
            "lines": copy.deepcopy(inventory_repo._lines),
            "records": list(transaction_repo._records),
        }
        try:
            committed = actor_repo.compare_and_set(actor, expected_version)
            if committed is None:
                raise ConcurrencyConflict(
                    "Character was modified by another request",
                    actorId=actor.id,
                    expectedVersion=int(expected_version),
                )
            for operation in operations or ():
                operation(_INMEMORY_SESSION)
            return committed
        except Exception:
            actor_repo._actors = snapshot["actors"]
            inventory_repo._lines = snapshot["lines"]
            transaction_repo._records = snapshot["records"]
            raise

    return _persist
