"""Key/value storage capability injected into play sessions.

Daily attempt counters and total points live behind this interface so the
engine holds no process-wide state. Platform layers provide their own
backends (player prefs, cloud saves); MemoryStorage serves tests and the
in-process service.
"""
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional


class StorageService(ABC):
    """Minimal persistent key/value store."""

    @abstractmethod
    def get_int(self, key: str, default: int = 0) -> int:
        ...

    @abstractmethod
    def set_int(self, key: str, value: int) -> None:
        ...

    @abstractmethod
    def get_str(self, key: str, default: str = "") -> str:
        ...

    @abstractmethod
    def set_str(self, key: str, value: str) -> None:
        ...

    def save(self) -> None:
        """Flush pending writes (no-op for stores that write through)."""


class MemoryStorage(StorageService):
    """Thread-safe in-memory store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._lock = threading.Lock()
        self._data: Dict[str, str] = dict(initial or {})

    def get_int(self, key: str, default: int = 0) -> int:
        with self._lock:
            text = self._data.get(key)
        if text is None:
            return default
        try:
            return int(text)
        except ValueError:
            return default

    def set_int(self, key: str, value: int) -> None:
        with self._lock:
            self._data[key] = str(int(value))

    def get_str(self, key: str, default: str = "") -> str:
        with self._lock:
            return self._data.get(key, default)

    def set_str(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value or ""


# Singleton instance
_storage: Optional[StorageService] = None


def get_storage() -> StorageService:
    """Get or create the process storage singleton."""
    global _storage
    if _storage is None:
        _storage = MemoryStorage()
    return _storage
