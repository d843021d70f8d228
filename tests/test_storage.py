"""Tests for the local key/value stores"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from storefront.config import Settings
from storefront.storage import FileStore, KeyValueStore, MemoryStore, RedisStore, create_store


@pytest.mark.asyncio
async def test_memory_store_roundtrip():
    store = MemoryStore()

    await store.set("guest_cart", b"[]")
    assert await store.get("guest_cart") == b"[]"

    await store.delete("guest_cart")
    assert await store.get("guest_cart") is None


@pytest.mark.asyncio
async def test_delete_missing_key_is_noop(tmp_path):
    await MemoryStore().delete("token")
    await FileStore(tmp_path).delete("token")


@pytest.mark.asyncio
@pytest.mark.parametrize("key", ["", "../etc/passwd", "a/b", "with space"])
async def test_rejects_unsafe_keys(key):
    with pytest.raises(ValueError):
        await MemoryStore().get(key)


@pytest.mark.asyncio
async def test_file_store_persists_across_instances(tmp_path):
    root = tmp_path / "state"
    await FileStore(root).set("token", b"abc")

    assert (root / "token").read_bytes() == b"abc"
    assert await FileStore(root).get("token") == b"abc"
    assert not list(root.glob(".*.tmp"))


@pytest.mark.asyncio
async def test_file_store_runs_disk_io_off_the_loop(tmp_path, monkeypatch):
    offloaded = []
    to_thread = asyncio.to_thread

    async def recording_to_thread(func, /, *args, **kwargs):
        offloaded.append(func)
        return await to_thread(func, *args, **kwargs)

    monkeypatch.setattr("storefront.storage.asyncio.to_thread", recording_to_thread)
    store = FileStore(tmp_path)

    await store.set("guest_cart", b"[]")
    assert await store.get("guest_cart") == b"[]"
    await store.delete("guest_cart")

    assert len(offloaded) == 3
    assert await store.get("guest_cart") is None


def test_key_value_store_is_abstract():
    with pytest.raises(TypeError):
        KeyValueStore()

    class Partial(KeyValueStore):
        async def get(self, key):
            return None

    with pytest.raises(TypeError):
        Partial()


@pytest.mark.asyncio
async def test_redis_store_prefixes_keys_and_decodes():
    redis = AsyncMock()
    redis.get = AsyncMock(return_value='[{"productId": "P1"}]')
    store = RedisStore(redis)

    assert await store.get("guest_cart") == b'[{"productId": "P1"}]'
    redis.get.assert_awaited_once_with("storefront:guest_cart")

    await store.set("token", b"abc")
    redis.set.assert_awaited_once_with("storefront:token", "abc")

    await store.delete("token")
    redis.delete.assert_awaited_once_with("storefront:token")


@pytest.mark.asyncio
async def test_redis_store_missing_key():
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)

    assert await RedisStore(redis, prefix="").get("token") is None


def test_create_store_defaults_to_files(tmp_path):
    store = create_store(Settings(store_path=tmp_path))

    assert isinstance(store, FileStore)
    assert store.root == tmp_path


@pytest.mark.asyncio
async def test_create_store_uses_redis_when_configured():
    store = create_store(Settings(redis_url="https://example.upstash.io", redis_token="secret"))

    assert isinstance(store, RedisStore)
