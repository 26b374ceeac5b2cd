"""
Key-value store used for challenges, used proofs and device state.

Every check-then-set the gateway needs is a single store call
(set_if_absent / compare_and_swap), so callers never hold a lock of their own.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable

import redis

from paygate.core.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """get / set / set-if-absent / compare-and-swap / delete over string values."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        pass

    @abstractmethod
    def set_if_absent(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        """Store value only if key is missing. Returns True if this call created it."""
        pass

    @abstractmethod
    def compare_and_swap(
        self, key: str, expected: str, new: str, ttl_seconds: int | None = None
    ) -> bool:
        """
        Replace value only if the current value equals expected.
        ttl_seconds=None keeps the remaining TTL of the key.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    def ping(self) -> bool:
        return True


class InMemoryStore(KeyValueStore):
    """Process-local store. One lock guards the whole table; critical sections are O(1)."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (value, expires_at or None)
        self._data: dict[str, tuple[str, float | None]] = {}

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        _, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return entry

    def _expiry(self, ttl_seconds: int | None) -> float | None:
        return self._clock() + ttl_seconds if ttl_seconds else None

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        with self._lock:
            self._data[key] = (value, self._expiry(ttl_seconds))

    def set_if_absent(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._data[key] = (value, self._expiry(ttl_seconds))
            return True

    def compare_and_swap(
        self, key: str, expected: str, new: str, ttl_seconds: int | None = None
    ) -> bool:
        with self._lock:
            entry = self._live(key)
            if entry is None or entry[0] != expected:
                return False
            expires_at = self._expiry(ttl_seconds) if ttl_seconds is not None else entry[1]
            self._data[key] = (new, expires_at)
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


# KEYS[1]=key, ARGV[1]=expected, ARGV[2]=new, ARGV[3]=ttl seconds (0 = keep current TTL)
_CAS_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if current ~= ARGV[1] then
    return 0
end
local ttl = tonumber(ARGV[3])
if ttl > 0 then
    redis.call('SET', KEYS[1], ARGV[2], 'EX', ttl)
else
    redis.call('SET', KEYS[1], ARGV[2], 'KEEPTTL')
end
return 1
"""


class RedisStore(KeyValueStore):
    """Redis-backed store, shared by every worker process."""

    def __init__(self, client: redis.Redis | None = None, prefix: str = "paygate:") -> None:
        self.client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self.prefix = prefix
        self._cas = self.client.register_script(_CAS_SCRIPT)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> str | None:
        return self.client.get(self._key(key))

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self.client.set(self._key(key), value, ex=ttl_seconds)

    def set_if_absent(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        """Atomic operation: setnx + expire in one call."""
        created = self.client.set(self._key(key), value, nx=True, ex=ttl_seconds)
        return bool(created)

    def compare_and_swap(
        self, key: str, expected: str, new: str, ttl_seconds: int | None = None
    ) -> bool:
        result = self._cas(keys=[self._key(key)], args=[expected, new, ttl_seconds or 0])
        return int(result) == 1

    def delete(self, key: str) -> None:
        self.client.delete(self._key(key))

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning("store_ping_failed", extra={"error": str(e)})
            return False


def create_store() -> KeyValueStore:
    """Build the store selected by settings.store_backend."""
    if settings.store_backend == "redis":
        logger.info("Using Redis store")
        return RedisStore()
    logger.info("Using in-memory store")
    return InMemoryStore()
