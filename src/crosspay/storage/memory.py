"""
In-Memory Storage Backend.

Default storage backend that keeps all data in memory.
Suitable for development and testing, but not for production.
"""

from __future__ import annotations

import time
import uuid
from copy import deepcopy
from typing import Any

from crosspay.storage.base import StorageBackend, register_storage_backend


class InMemoryStorage(StorageBackend):
    """
    In-memory storage backend.

    Stores all data in Python dicts. Data is lost when process ends.
    Operations never await, so each one is atomic within an event loop.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._locks: dict[str, tuple[str, float]] = {}

    def _ensure_collection(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(collection, {})

    @staticmethod
    def _matches(data: dict[str, Any], filters: dict[str, Any] | None) -> bool:
        if not filters:
            return True
        return all(data.get(k) == v for k, v in filters.items())

    async def save(self, collection: str, key: str, data: dict[str, Any]) -> None:
        self._ensure_collection(collection)[key] = deepcopy(data)

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        data = self._ensure_collection(collection).get(key)
        return deepcopy(data) if data is not None else None

    async def delete(self, collection: str, key: str) -> bool:
        coll = self._ensure_collection(collection)
        if key in coll:
            del coll[key]
            return True
        return False

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query data with optional filters."""
        results = []
        for key, data in self._ensure_collection(collection).items():
            if not self._matches(data, filters):
                continue
            result = deepcopy(data)
            result["_key"] = key
            results.append(result)

        results = results[offset:]
        if limit is not None:
            results = results[:limit]
        return results

    async def update(self, collection: str, key: str, data: dict[str, Any]) -> bool:
        coll = self._ensure_collection(collection)
        if key not in coll:
            return False
        coll[key].update(deepcopy(data))
        return True

    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        if filters:
            return len(await self.query(collection, filters))
        return len(self._ensure_collection(collection))

    async def clear(self, collection: str) -> int:
        coll = self._ensure_collection(collection)
        count = len(coll)
        coll.clear()
        return count

    async def acquire_lock(self, key: str, ttl: int = 30) -> str | None:
        now = time.monotonic()
        held = self._locks.get(key)
        if held is not None and now < held[1]:
            return None
        token = str(uuid.uuid4())
        self._locks[key] = (token, now + ttl)
        return token

    async def release_lock(self, key: str, token: str | None = None) -> bool:
        held = self._locks.get(key)
        if held is None:
            return False
        if token is not None and held[0] != token:
            return False
        del self._locks[key]
        return True


# Register as default backend
register_storage_backend("memory", InMemoryStorage)
