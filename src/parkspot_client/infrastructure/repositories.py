# File: src/parkspot_client/infrastructure/repositories.py
"""
Session Repositories

Key/value persistence for the session cache: the bearer token and the last
known user snapshot, each stored under a fixed key and cleared as a unit.

Storage Implementations:
- InMemorySessionRepository - For testing and short-lived processes
- JsonFileSessionRepository - Survives process restarts on one machine
- RedisSessionRepository - Shared cache, e.g. for several worker processes
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

import redis


# ============================================================================
# REPOSITORY INTERFACE
# ============================================================================

class SessionRepository(ABC):
    """Base repository interface for session values"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get a stored value by key"""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value under key, replacing any previous value"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key; missing keys are ignored"""
        pass

    def clear(self, keys: Iterable[str]) -> None:
        """Remove several keys"""
        for key in keys:
            self.delete(key)


# ============================================================================
# IMPLEMENTATIONS
# ============================================================================

class InMemorySessionRepository(SessionRepository):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileSessionRepository(SessionRepository):
    """
    Stores all keys in one JSON document

    Writes go to a temporary file that replaces the target, so a crash never
    leaves a half-written session file behind.
    """

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)
        self._lock = threading.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _save(self, values: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".session-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(values, handle)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            values = self._load()
            values[key] = value
            self._save(values)

    def delete(self, key: str) -> None:
        with self._lock:
            values = self._load()
            if values.pop(key, None) is not None:
                self._save(values)

    def clear(self, keys: Iterable[str]) -> None:
        with self._lock:
            values = self._load()
            removed = [values.pop(key) for key in list(keys) if key in values]
            if removed:
                self._save(values)


class RedisSessionRepository(SessionRepository):
    """Session values in Redis under a namespace prefix"""

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        url: str = "redis://localhost:6379/0",
        namespace: str = "parkspot:session:",
    ):
        self._client = client or redis.Redis.from_url(url, decode_responses=True)
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def get(self, key: str) -> Optional[str]:
        value = self._client.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        self._client.set(self._key(key), value)

    def delete(self, key: str) -> None:
        self._client.delete(self._key(key))

    def clear(self, keys: Iterable[str]) -> None:
        names = [self._key(key) for key in keys]
        if names:
            self._client.delete(*names)
