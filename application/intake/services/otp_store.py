"""
OTP storage

One live entry per email, keyed by the email exactly as submitted. Expiry is
checked lazily by the caller; stores never sweep.
"""

import math
import threading
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Optional

import redis

from intake.config.settings import IntakeConfigs
from intake.connections.redis_wrapper import RedisJSONWrapper, safe_key_part
from intake.core.constants import CacheKeys
from intake.logging.utils import get_app_logger
from intake.utils.datetime_helpers import get_utc_now, parse_datetime

logger = get_app_logger("intake.otp_store")
configs = IntakeConfigs()


@dataclass
class OTPEntry:
    code: str
    expires_at: datetime
    verified: bool = False

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> dict:
        data = asdict(self)
        data["expires_at"] = self.expires_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "OTPEntry":
        return cls(
            code=str(data["code"]),
            expires_at=parse_datetime(data["expires_at"]),
            verified=bool(data.get("verified", False)),
        )


class OTPStore:
    """Interface shared by the OTP store backends"""

    def put(self, email: str, entry: OTPEntry) -> None:
        raise NotImplementedError

    def get(self, email: str) -> Optional[OTPEntry]:
        raise NotImplementedError

    def delete(self, email: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemoryOTPStore(OTPStore):
    """Process-local store; entries do not survive a restart."""

    def __init__(self):
        self._entries: Dict[str, OTPEntry] = {}
        self._lock = threading.Lock()

    def put(self, email: str, entry: OTPEntry) -> None:
        with self._lock:
            # copy so callers never share a mutable entry with the store
            self._entries[email] = OTPEntry(entry.code, entry.expires_at, entry.verified)

    def get(self, email: str) -> Optional[OTPEntry]:
        with self._lock:
            entry = self._entries.get(email)
            if entry is None:
                return None
            return OTPEntry(entry.code, entry.expires_at, entry.verified)

    def delete(self, email: str) -> None:
        with self._lock:
            self._entries.pop(email, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisOTPStore(OTPStore):
    """
    Redis backed store for multi-instance deployments.

    The key outlives expires_at by OTP_EXPIRED_RETENTION_SECONDS so a late
    verification still reports the code as expired instead of not found.
    """

    def __init__(self, redis_wrapper: Optional[RedisJSONWrapper] = None, retention_seconds: Optional[int] = None):
        self._wrapper = redis_wrapper
        self.retention_seconds = (
            configs.OTP_EXPIRED_RETENTION_SECONDS if retention_seconds is None else retention_seconds
        )

    def _client(self) -> RedisJSONWrapper:
        if self._wrapper is None or not self._wrapper.connected:
            self._wrapper = RedisJSONWrapper(database=configs.REDIS_CACHE_DB)
        if not self._wrapper.connected:
            logger.error("otp_store_unavailable | backend=redis")
            raise redis.exceptions.ConnectionError("Redis unavailable for OTP storage")
        return self._wrapper

    @staticmethod
    def cache_key(email: str) -> str:
        return f"{CacheKeys.OTP_PREFIX}{safe_key_part(email)}"

    def ttl_for(self, entry: OTPEntry) -> int:
        remaining = (entry.expires_at - get_utc_now()).total_seconds()
        return max(1, math.ceil(remaining) + self.retention_seconds)

    def put(self, email: str, entry: OTPEntry) -> None:
        self._client().set_with_ttl(self.cache_key(email), entry.to_dict(), self.ttl_for(entry))

    def get(self, email: str) -> Optional[OTPEntry]:
        data = self._client().get(self.cache_key(email))
        if not data:
            return None
        return OTPEntry.from_dict(data)

    def delete(self, email: str) -> None:
        self._client().delete(self.cache_key(email))

    def clear(self) -> None:
        client = self._client().redis_client
        keys = list(client.scan_iter(match=f"{CacheKeys.OTP_PREFIX}*"))
        if keys:
            client.delete(*keys)
        logger.info(f"otp_store_cleared | backend=redis count={len(keys)}")


_otp_store: Optional[OTPStore] = None


def build_otp_store(backend: Optional[str] = None) -> OTPStore:
    backend = (backend or configs.OTP_STORE_BACKEND).lower()
    if backend == "redis":
        return RedisOTPStore()
    if backend != "memory":
        logger.warning(f"unknown_otp_store_backend | backend={backend} fallback=memory")
    return InMemoryOTPStore()


def get_otp_store() -> OTPStore:
    """FastAPI dependency returning the process wide OTP store"""
    global _otp_store
    if _otp_store is None:
        _otp_store = build_otp_store()
        logger.info(f"otp_store_initialized | backend={type(_otp_store).__name__}")
    return _otp_store
