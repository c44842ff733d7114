import json
from urllib.parse import quote_plus

import redis

# Logger
from intake.logging.utils import get_app_logger
logger = get_app_logger("intake.redis_wrapper")

# Settings
from intake.config.settings import IntakeConfigs
configs = IntakeConfigs()

REDIS_URL = configs.REDIS_URL


def safe_key_part(part: str) -> str:
    """Encode dynamic key segments so Redis keys contain only URL-safe chars."""
    return quote_plus(str(part), safe='')


class RedisJSONWrapper:
    def __init__(self, redis_uri=REDIS_URL, database=None, client=None):
        if client is not None:
            self.redis_client = client
            self.connected = True
            return
        if database is not None:
            redis_uri = f"{redis_uri}/{database}"
        try:
            self.redis_client = redis.from_url(redis_uri)
            self.redis_client.ping()
            self.connected = True
        except redis.exceptions.RedisError as e:
            logger.error(f"redis_connect_failed | uri={redis_uri} error={e}")
            self.redis_client = None
            self.connected = False

    def set_with_ttl(self, key, data, ttl_seconds: int):
        """Set a key with a TTL (in seconds). Stores data as JSON string.

        Falls back to non-TTL set if ttl_seconds is invalid (<=0).
        """
        value = json.dumps(data)
        if isinstance(ttl_seconds, int) and ttl_seconds > 0:
            # SETEX attaches expiry atomically with the value
            self.redis_client.setex(key, ttl_seconds, value)
        else:
            self.redis_client.set(key, value)

    def set_if_not_exists_with_ttl(self, key, data, ttl_seconds: int) -> bool:
        """
        Atomically set a key with TTL only if it doesn't exist (SETNX behavior).

        Returns:
            True if key was set (didn't exist before)
            False if key already exists
        """
        result = self.redis_client.set(key, json.dumps(data), nx=True, ex=ttl_seconds)
        return bool(result)

    def get(self, key):
        data = self.redis_client.get(key)
        if data:
            return json.loads(data)
        return None

    def delete(self, key):
        return self.redis_client.delete(key) > 0
