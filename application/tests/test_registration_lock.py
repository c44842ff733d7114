import json
from unittest.mock import MagicMock, patch

import pytest

from intake.connections.redis_wrapper import RedisJSONWrapper
from intake.services.registration_lock import InMemoryRegistrationLock, RedisRegistrationLock


@pytest.mark.asyncio
async def test_memory_lock_is_exclusive_per_key():
    lock = InMemoryRegistrationLock()

    assert await lock.acquire("a@x.com") is True
    assert await lock.acquire("a@x.com") is False
    assert await lock.acquire("b@x.com") is True

    await lock.release("a@x.com")
    assert await lock.acquire("a@x.com") is True


@pytest.mark.asyncio
async def test_memory_lock_release_unknown_key():
    lock = InMemoryRegistrationLock()
    await lock.release("nobody@x.com")
    assert lock.is_locked("nobody@x.com") is False


@pytest.fixture
def redis_client():
    return MagicMock()


@pytest.fixture
def redis_lock(redis_client):
    return RedisRegistrationLock(RedisJSONWrapper(client=redis_client), ttl_seconds=30)


@pytest.mark.asyncio
async def test_redis_lock_uses_set_nx_with_ttl(redis_lock, redis_client):
    redis_client.set.return_value = True

    assert await redis_lock.acquire("a@x.com") is True

    key = redis_client.set.call_args.args[0]
    assert key == "candidate_registration_lock:a%40x.com"
    assert redis_client.set.call_args.kwargs == {"nx": True, "ex": 30}


@pytest.mark.asyncio
async def test_redis_lock_busy(redis_lock, redis_client):
    redis_client.set.return_value = None
    assert await redis_lock.acquire("a@x.com") is False


@pytest.mark.asyncio
async def test_redis_lock_release_only_deletes_own_token(redis_lock, redis_client):
    redis_client.set.return_value = True
    await redis_lock.acquire("a@x.com")
    stored = redis_client.set.call_args.args[1]

    redis_client.get.return_value = stored.encode()
    redis_client.delete.return_value = 1
    await redis_lock.release("a@x.com")
    redis_client.delete.assert_called_once_with("candidate_registration_lock:a%40x.com")


@pytest.mark.asyncio
async def test_redis_lock_release_after_takeover(redis_lock, redis_client):
    redis_client.set.return_value = True
    await redis_lock.acquire("a@x.com")

    redis_client.get.return_value = json.dumps({"token": "someone-else"}).encode()
    await redis_lock.release("a@x.com")
    redis_client.delete.assert_not_called()


@pytest.mark.asyncio
async def test_redis_lock_fails_open_without_redis():
    with patch("intake.services.registration_lock.RedisJSONWrapper", return_value=MagicMock(connected=False)):
        lock = RedisRegistrationLock(ttl_seconds=30)
        assert await lock.acquire("a@x.com") is True
