"""Resume stores: in-memory and Redis (mocked client)."""

import json
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from media_upload.application.dtos.upload import ResumeEntry
from media_upload.infrastructure.cache.resume_store import (
    InMemoryResumeStore,
    RedisResumeStore,
    create_resume_store,
)

ENTRY = ResumeEntry(
    upload_url="https://tus.test/files/u1", remote_object_id="v1", container_id="42", size=10
)


async def test_in_memory_store_get_set_delete() -> None:
    store = InMemoryResumeStore()
    assert await store.get("fp") is None
    await store.set("fp", ENTRY)
    assert await store.get("fp") == ENTRY
    await store.delete("fp")
    await store.delete("fp")
    assert len(store) == 0


class TestRedisResumeStore:
    @pytest.fixture
    def client(self) -> AsyncMock:
        return AsyncMock()

    async def test_set_writes_json_with_ttl(self, client, settings) -> None:
        store = RedisResumeStore(redis_client=client, settings=settings)
        await store.set("fp", ENTRY)
        key, ttl, value = client.setex.await_args.args
        assert key == "resume:fp"
        assert ttl == settings.resume_store_ttl_seconds
        assert json.loads(value) == ENTRY.to_dict()

    async def test_get_parses_entry(self, client, settings) -> None:
        client.get.return_value = json.dumps(ENTRY.to_dict())
        store = RedisResumeStore(redis_client=client, settings=settings)
        assert await store.get("fp") == ENTRY
        client.get.assert_awaited_once_with("resume:fp")

    async def test_unreadable_entry_is_a_miss(self, client, settings) -> None:
        client.get.return_value = "not json"
        store = RedisResumeStore(redis_client=client, settings=settings)
        assert await store.get("fp") is None

    async def test_redis_errors_degrade_to_no_resume(self, client, settings) -> None:
        client.get.side_effect = redis.RedisError("down")
        client.setex.side_effect = redis.RedisError("down")
        client.delete.side_effect = redis.RedisError("down")
        store = RedisResumeStore(redis_client=client, settings=settings)

        assert await store.get("fp") is None
        await store.set("fp", ENTRY)
        await store.delete("fp")

    async def test_unconnected_store_is_inert(self, settings) -> None:
        store = RedisResumeStore(settings=settings)
        assert store.is_available() is False
        assert await store.get("fp") is None
        await store.set("fp", ENTRY)

    async def test_disconnect_closes_client(self, client, settings) -> None:
        store = RedisResumeStore(redis_client=client, settings=settings)
        await store.disconnect()
        client.close.assert_awaited_once()
        assert store.is_available() is False


def test_factory_selects_backend(settings) -> None:
    assert isinstance(create_resume_store(settings), InMemoryResumeStore)
    redis_settings = settings.model_copy(update={"resume_store_backend": "redis"})
    assert isinstance(create_resume_store(redis_settings), RedisResumeStore)
