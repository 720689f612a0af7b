# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Distribution channel for dispatch tables.

A minimal async key/value interface through which the compiler broadcasts the
serialized dispatch tables and wire schema once per job, and from which every
worker task reads them before it starts. Implementations may use Redis, an
object store, the engine's own distributed cache, etc.
"""

import asyncio
import pickle
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "CacheError",
    "DistributedCache",
    "InMemoryCache",
    "push_object",
    "pull_object",
]


class CacheError(RuntimeError):
    """Base error for distribution cache operations."""


@runtime_checkable
class DistributedCache(Protocol):
    """
    Minimal async KV interface.

    Notes:
        - Keys are strings; values are opaque bytes.
        - Values are written once per job and read many times.
    """

    async def get(self, key: str) -> bytes | None: ...
    async def set(self, key: str, value: bytes) -> None: ...
    async def delete(self, key: str) -> None: ...


class InMemoryCache:
    """Process-local cache for tests and single-process engines."""

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise CacheError(f"value for {key!r} must be bytes")
        async with self._lock:
            self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


async def push_object(cache: DistributedCache, key: str, obj: Any) -> int:
    """Serialize `obj` under `key`; returns the payload size in bytes."""
    try:
        blob = pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise CacheError(f"cannot serialize object for {key!r}: {e}") from e
    await cache.set(key, blob)
    return len(blob)


async def pull_object(cache: DistributedCache, key: str) -> Any:
    blob = await cache.get(key)
    if blob is None:
        raise CacheError(f"no object distributed under {key!r}")
    return pickle.loads(blob)
