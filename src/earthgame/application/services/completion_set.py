from __future__ import annotations

import json
import logging
import threading
from typing import FrozenSet, Iterable

from earthgame.domain.repositories import KeyValueStore


logger = logging.getLogger(__name__)

COMPLETION_KEY_PREFIX = "earth_completed_stories"


def completion_key(player_id: str | None) -> str:
    player = str(player_id or "").strip()
    return f"{COMPLETION_KEY_PREFIX}:{player}" if player else COMPLETION_KEY_PREFIX


def _decode(raw: str | None) -> set[str]:
    if not raw:
        return set()
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Stored completion set is not valid JSON; starting empty")
        return set()
    if not isinstance(parsed, list):
        logger.warning("Stored completion set is not a list; starting empty")
        return set()
    return {str(entry) for entry in parsed if str(entry).strip()}


class CompletionSet:
    """Milestones a player has finished, mirrored to a key-value store.

    Entries are never removed. Writes merge with whatever is stored so a
    second writer on the same key cannot drop completions.
    """

    def __init__(self, store: KeyValueStore, player_id: str | None = None) -> None:
        self._store = store
        self.player_id = str(player_id or "").strip() or None
        self._key = completion_key(self.player_id)
        self._completed: set[str] = set()
        self._lock = threading.Lock()

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> FrozenSet[str]:
        with self._lock:
            self._completed |= _decode(self._store.get(self._key))
            return frozenset(self._completed)

    def __contains__(self, milestone_id: object) -> bool:
        with self._lock:
            return milestone_id in self._completed

    def __len__(self) -> int:
        with self._lock:
            return len(self._completed)

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._completed)

    def add(self, milestone_id: str) -> None:
        self.add_many([milestone_id])

    def add_many(self, milestone_ids: Iterable[str]) -> None:
        incoming = {str(entry) for entry in milestone_ids if str(entry).strip()}
        if not incoming:
            return
        with self._lock:
            self._completed |= incoming
            merged = _decode(self._store.get(self._key)) | self._completed
            self._store.set(self._key, json.dumps(sorted(merged)))
            self._completed = merged
