"""Shared test doubles: re-exports of the memory backends."""

from __future__ import annotations

from tailorloom.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryIdentityStore,
    MemoryImportStore,
    MemoryLockBackend,
    MemoryMappingStore,
)

__all__ = [
    "MemoryCacheBackend",
    "MemoryIdentityStore",
    "MemoryImportStore",
    "MemoryLockBackend",
    "MemoryMappingStore",
]
