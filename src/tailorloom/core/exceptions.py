"""TailorLoom exception hierarchy."""

from __future__ import annotations


class TailorLoomError(Exception):
    """Base exception for all TailorLoom errors."""


class StoreError(TailorLoomError):
    """A persistence backend operation failed."""


class DuplicateRecordError(StoreError):
    """A write collided with an existing record's unique key."""

    def __init__(self, table: str, key: str) -> None:
        self.table = table
        self.key = key
        super().__init__(f"Duplicate record in {table}: {key}")


class CustomerCreationError(TailorLoomError):
    """A new customer could not be created while stitching a row."""


class UnknownSourceError(TailorLoomError):
    """No schema is registered for the requested source."""

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"Unknown source: {source}")


class ImportStartError(TailorLoomError):
    """The import history record could not be created."""


class MappingNotFoundError(TailorLoomError):
    """Saved mapping template not found."""


class CacheError(TailorLoomError):
    """Redis cache operation failed."""


class LockError(TailorLoomError):
    """An identity lock could not be acquired in time."""
