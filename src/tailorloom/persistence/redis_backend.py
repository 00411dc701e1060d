"""Redis backends implementing ICacheBackend and ILockBackend."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import redis
import structlog

from tailorloom.core.exceptions import CacheError, LockError

logger = structlog.get_logger(__name__)


class RedisCacheBackend:
    """Production ICacheBackend backed by Redis."""

    def __init__(
        self, host: str = "localhost", port: int = 6379, db: int = 0, socket_timeout: float = 5.0,
    ) -> None:
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True, socket_timeout=socket_timeout,
        )

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            raise CacheError(f"Redis GET failed for key={key!r}: {exc}") from exc

    def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            self._client.setex(key, ttl, value)
        except redis.RedisError as exc:
            raise CacheError(f"Redis SETEX failed for key={key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise CacheError(f"Redis DELETE failed for key={key!r}: {exc}") from exc


class RedisLockBackend:
    """ILockBackend using redis-py's distributed lock.

    The lock expires after ``lease`` seconds so a crashed holder cannot wedge
    an identity key forever.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        socket_timeout: float = 5.0,
        lease: float = 30.0,
    ) -> None:
        self._client = redis.Redis(host=host, port=port, db=db, socket_timeout=socket_timeout)
        self._lease = lease

    @contextmanager
    def hold(self, key: str, timeout: float) -> Iterator[None]:
        lock = self._client.lock(f"lock:{key}", timeout=self._lease, blocking_timeout=timeout)
        try:
            acquired = lock.acquire()
        except redis.RedisError as exc:
            raise LockError(f"Redis lock failed for key={key!r}: {exc}") from exc
        if not acquired:
            raise LockError(f"Timed out after {timeout}s waiting for lock {key!r}")
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError:
                logger.warning("identity_lock_lease_expired", key=key, lease=self._lease)
