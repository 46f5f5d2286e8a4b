from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from earthgame.domain.repositories import KeyValueStore


logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(str(key))

    def set(self, key: str, value: str) -> None:
        self._values[str(key)] = str(value)


class JsonFileKeyValueStore(KeyValueStore):
    """String values kept in one JSON object on disk, replaced atomically on write."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError):
            logger.warning("Key-value file unreadable; treating as empty", extra={"path": str(self.path)})
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(key): str(value) for key, value in payload.items()}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(str(key))

    def set(self, key: str, value: str) -> None:
        with self._lock:
            payload = self._read_all()
            payload[str(key)] = str(value)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except Exception:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
