from __future__ import annotations

import hashlib
import json
import random
from typing import Any, Callable, Mapping

from earthgame.domain.models.actor import Actor


def _canonical(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _canonical(val) for key, val in sorted(value.items(), key=lambda item: str(item[0]))}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_canonical(item) for item in value), key=lambda item: json.dumps(item, sort_keys=True, default=str))
    return value


def derive_seed(namespace: str, context: Mapping[str, Any]) -> int:
    payload = {"namespace": str(namespace), "context": _canonical(context)}
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    return int(digest, 16) % (2**32)


RngFactory = Callable[[Actor, str], random.Random]


def system_rng_factory(_actor: Actor, _action: str) -> random.Random:
    return random.Random()


def seeded_rng_factory(base_seed: int) -> RngFactory:
    """Random sources reproducible from the base seed and the actor snapshot.

    The actor version is part of the context, so consecutive actions by the
    same actor draw from different streams.
    """

    def _factory(actor: Actor, action: str) -> random.Random:
        seed = derive_seed(
            namespace=f"action.{str(action).lower()}",
            context={
                "base_seed": int(base_seed),
                "actor_id": str(actor.id),
                "version": int(actor.version),
                "level": int(actor.level),
                "energy": int(actor.energy),
            },
        )
        return random.Random(seed)

    return _factory
