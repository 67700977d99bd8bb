# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Local persistent key/value stores for the sponsor-side client.

Values are JSON-compatible. Keys used by the client: `adoptedItems`, `user`,
`accessToken`, `refreshToken` and the legacy `token`.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from ..services.redis import RedisService

logger = logging.getLogger(__name__)

ADOPTED_ITEMS_KEY = "adoptedItems"
USER_KEY = "user"
ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
LEGACY_TOKEN_KEY = "token"


class LocalStore(ABC):
    """Key/value store surviving restarts."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Stored value, or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> bool:
        """Store a value, overwriting wholesale. Returns False when the write failed."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key."""

    def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.delete(key)


class MemoryStore(LocalStore):
    """Process-local store, for clients configured without a store path."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> bool:
        # Values are kept as detached JSON copies
        with self._lock:
            self._data[key] = json.loads(json.dumps(value))
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class JsonFileStore(LocalStore):
    """All keys in one JSON document on disk, rewritten on every change."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Local store unreadable, starting empty: {str(e)}", extra={"path": str(self.path)})
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data), encoding="utf-8")
            tmp_path.replace(self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Local store write failed: {str(e)}", extra={"path": str(self.path)})
            return False

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> bool:
        with self._lock:
            data = self._read()
            data[key] = value
            return self._write(data)

    def delete(self, key: str) -> bool:
        with self._lock:
            data = self._read()
            if key not in data:
                return False
            del data[key]
            return self._write(data)


class RedisStore(LocalStore):
    """Store backed by Redis, for clients running next to a Redis instance."""

    def __init__(self, redis_service: RedisService):
        self.redis = redis_service

    def get(self, key: str) -> Optional[Any]:
        return self.redis.get(key)

    def set(self, key: str, value: Any) -> bool:
        return self.redis.set(key, json.dumps(value))

    def delete(self, key: str) -> bool:
        return self.redis.delete(key)
