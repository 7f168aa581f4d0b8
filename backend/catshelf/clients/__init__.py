"""External service clients package.

This package contains the storage capability consumed by play sessions.
"""
from .storage import (
    StorageService,
    MemoryStorage,
    get_storage,
)

__all__ = [
    "StorageService",
    "MemoryStorage",
    "get_storage",
]
