"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from typing import NamedTuple

from tailorloom.core.config import AppSettings
from tailorloom.core.protocols import (
    ICacheBackend,
    IIdentityStore,
    IImportStore,
    ILockBackend,
    IMappingStore,
)
from tailorloom.persistence.dynamodb_backend import (
    DynamoDBIdentityStore,
    DynamoDBImportStore,
    DynamoDBMappingStore,
)
from tailorloom.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryIdentityStore,
    MemoryImportStore,
    MemoryLockBackend,
    MemoryMappingStore,
)
from tailorloom.persistence.redis_backend import RedisCacheBackend, RedisLockBackend


class Persistence(NamedTuple):
    identity: IIdentityStore
    imports: IImportStore
    mappings: IMappingStore
    cache: ICacheBackend
    lock: ILockBackend | None


def create_persistence(settings: AppSettings | None = None) -> Persistence:
    """Create wired-up persistence backends from application settings."""
    if settings is None:
        settings = AppSettings()

    redis_kwargs = {
        "host": settings.redis.host,
        "port": settings.redis.port,
        "db": settings.redis.db,
        "socket_timeout": settings.redis.socket_timeout,
    }

    cache: ICacheBackend
    if settings.cache == "redis":
        cache = RedisCacheBackend(**redis_kwargs)
    else:
        cache = MemoryCacheBackend()

    lock: ILockBackend | None = None
    if settings.lock == "redis":
        lock = RedisLockBackend(**redis_kwargs)
    elif settings.lock == "memory":
        lock = MemoryLockBackend()

    if settings.persistence == "memory":
        return Persistence(MemoryIdentityStore(), MemoryImportStore(), MemoryMappingStore(), cache, lock)

    ddb_kwargs = {
        "table_suffix": settings.dynamodb.table_suffix,
        "region": settings.dynamodb.region,
        "endpoint_url": settings.dynamodb.endpoint_url,
        "connect_timeout": settings.dynamodb.connect_timeout,
        "read_timeout": settings.dynamodb.read_timeout,
        "max_attempts": settings.dynamodb.max_attempts,
    }
    return Persistence(
        DynamoDBIdentityStore(**ddb_kwargs),
        DynamoDBImportStore(**ddb_kwargs),
        DynamoDBMappingStore(cache=cache, **ddb_kwargs),
        cache,
        lock,
    )
