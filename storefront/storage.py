"""
Local Key/Value Storage

Narrow async byte-blob interface behind the guest cart and the session
credential. Backends:
- MemoryStore: process-local, used by tests and throwaway sessions
- FileStore: one file per key under a directory (the browser localStorage
  equivalent for a desktop/CLI client)
- RedisStore: Upstash Redis, for clients that keep local state off-box
"""

import asyncio
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path

from upstash_redis.asyncio import Redis as AsyncRedis

from storefront.config import Settings
from storefront.logging import get_logger

logger = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]+$")


def _check_key(key: str) -> str:
    if not key or not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class KeyValueStore(ABC):
    """Async get/set/delete of byte blobs by key."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None: ...

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...


class MemoryStore(KeyValueStore):
    """In-process store."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self._data: dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> bytes | None:
        return self._data.get(_check_key(key))

    async def set(self, key: str, value: bytes) -> None:
        self._data[_check_key(key)] = bytes(value)

    async def delete(self, key: str) -> None:
        self._data.pop(_check_key(key), None)


class FileStore(KeyValueStore):
    """
    One file per key under ``root``; writes go through a temp file + rename.

    Disk access runs in a worker thread so a slow filesystem does not stall
    the event loop mid-reconciliation.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / _check_key(key)

    async def get(self, key: str) -> bytes | None:
        return await asyncio.to_thread(self._read, self._path(key))

    async def set(self, key: str, value: bytes) -> None:
        await asyncio.to_thread(self._write, self._path(key), bytes(value))

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)

    @staticmethod
    def _read(path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _write(self, path: Path, value: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.tmp")
        tmp.write_bytes(value)
        os.replace(tmp, path)


class RedisStore(KeyValueStore):
    """Upstash Redis backend. Values are stored as UTF-8 strings."""

    PREFIX = "storefront:"

    def __init__(self, redis: AsyncRedis, prefix: str | None = None) -> None:
        self._redis = redis
        self._prefix = self.PREFIX if prefix is None else prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{_check_key(key)}"

    async def get(self, key: str) -> bytes | None:
        value = await self._redis.get(self._key(key))
        if value is None:
            return None
        return value.encode("utf-8") if isinstance(value, str) else bytes(value)

    async def set(self, key: str, value: bytes) -> None:
        await self._redis.set(self._key(key), value.decode("utf-8"))

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))


def create_store(settings: Settings) -> KeyValueStore:
    """Pick the backend configured in ``settings``: Redis when credentials are set, else files."""
    if settings.redis_enabled:
        logger.info("Using Upstash Redis for local state")
        return RedisStore(AsyncRedis(url=settings.redis_url, token=settings.redis_token))
    logger.info("Using file store at %s", settings.store_path)
    return FileStore(settings.store_path)


__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "RedisStore",
    "create_store",
]
