"""
Per-email registration lock

Serialises registration completions for the same email so a verified OTP can
only be consumed by one request at a time. Acquisition never waits: a second
request for the same email gets False and is rejected with 409.
"""

import asyncio
import uuid
from typing import Dict, Optional

from intake.config.settings import IntakeConfigs
from intake.connections.redis_wrapper import RedisJSONWrapper, safe_key_part
from intake.core.constants import CacheKeys
from intake.logging.utils import get_app_logger
from intake.utils.datetime_helpers import get_utc_now

logger = get_app_logger("intake.registration_lock")
configs = IntakeConfigs()


class RegistrationLock:

    async def acquire(self, key: str) -> bool:
        raise NotImplementedError

    async def release(self, key: str) -> None:
        raise NotImplementedError


class InMemoryRegistrationLock(RegistrationLock):
    """asyncio.Lock registry for a single process"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    async def acquire(self, key: str) -> bool:
        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked():
            logger.warning(f"registration_lock_busy | key={key}")
            return False
        await lock.acquire()
        return True

    async def release(self, key: str) -> None:
        lock = self._locks.get(key)
        if lock is not None and lock.locked():
            lock.release()
        # drop idle locks so the registry does not grow with every email
        if lock is not None and not lock.locked():
            self._locks.pop(key, None)

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())


class RedisRegistrationLock(RegistrationLock):
    """
    SET NX EX lock shared by every instance.

    Fails open when Redis is unreachable; the unique indexes on the
    candidates table still reject duplicates.
    """

    def __init__(self, redis_wrapper: Optional[RedisJSONWrapper] = None, ttl_seconds: Optional[int] = None):
        self._wrapper = redis_wrapper
        self.ttl_seconds = ttl_seconds or configs.REGISTRATION_LOCK_TTL_SECONDS
        self._tokens: Dict[str, str] = {}

    def _client(self) -> Optional[RedisJSONWrapper]:
        if self._wrapper is None or not self._wrapper.connected:
            self._wrapper = RedisJSONWrapper(database=configs.REDIS_CACHE_DB)
        return self._wrapper if self._wrapper.connected else None

    @staticmethod
    def lock_key(key: str) -> str:
        return f"{CacheKeys.REGISTRATION_LOCK_PREFIX}{safe_key_part(key)}"

    async def acquire(self, key: str) -> bool:
        redis_client = self._client()
        if redis_client is None:
            logger.error("Redis not connected, allowing registration (fail-open)")
            return True

        token = uuid.uuid4().hex
        lock_data = {"token": token, "timestamp": get_utc_now().isoformat()}
        acquired = redis_client.set_if_not_exists_with_ttl(self.lock_key(key), lock_data, self.ttl_seconds)
        if acquired:
            self._tokens[key] = token
            logger.info(f"registration_lock_acquired | key={key} ttl={self.ttl_seconds}s")
        else:
            logger.warning(f"registration_lock_busy | key={key}")
        return acquired

    async def release(self, key: str) -> None:
        token = self._tokens.pop(key, None)
        if token is None:
            return
        redis_client = self._client()
        if redis_client is None:
            return
        lock_key = self.lock_key(key)
        current = redis_client.get(lock_key)
        # only remove our own lock; after a TTL expiry another request may own it
        if current and current.get("token") == token:
            redis_client.delete(lock_key)


_registration_lock: Optional[RegistrationLock] = None


def get_registration_lock() -> RegistrationLock:
    """FastAPI dependency; the lock backend follows OTP_STORE_BACKEND"""
    global _registration_lock
    if _registration_lock is None:
        if configs.OTP_STORE_BACKEND == "redis":
            _registration_lock = RedisRegistrationLock()
        else:
            _registration_lock = InMemoryRegistrationLock()
    return _registration_lock
