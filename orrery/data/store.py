"""
Key -> JSON blob stores backing the planet data cache.

JsonFileStore keeps every key in one JSON file on disk (the project cache);
MemoryStore is the in-process equivalent.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class MemoryStore:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, *keys: str) -> None:
        for k in keys:
            self._data.pop(k, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileStore:
    """
    Single JSON file store. A missing or corrupt file starts fresh; write
    failures are logged and the in-memory view stays authoritative.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    # -----------------------
    # File helpers
    # -----------------------
    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            txt = self.path.read_text(encoding="utf-8")
            data = json.loads(txt)
            if isinstance(data, dict):
                return data
            logger.warning("Cache file %s content not a dict; starting fresh.", self.path)
            return {}
        except Exception:
            logger.warning("Cache file %s unreadable or corrupt, starting fresh.", self.path)
            return {}

    def _save(self, data: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data), encoding="utf-8")
        except Exception as e:
            logger.warning("Failed to write cache file %s: %s", self.path, e)

    # -----------------------
    # Public API
    # -----------------------
    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, *keys: str) -> None:
        data = self._load()
        changed = False
        for k in keys:
            if k in data:
                del data[k]
                changed = True
        if changed:
            self._save(data)

    def keys(self):
        return list(self._load().keys())
