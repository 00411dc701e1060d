"""Protocol interfaces for TailorLoom persistence and coordination.

Stores are consumed structurally: no inheritance required, and every
backend (memory, DynamoDB) can be checked with isinstance().
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from tailorloom.models.identity import Customer, CustomerSource, StitchingConflict
from tailorloom.models.imports import ImportRecord
from tailorloom.models.mapping import SavedMapping


# ---------------------------------------------------------------------------
# Persistence: Identity Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IIdentityStore(Protocol):
    """Customers, their per-source links, and stitching conflicts."""

    def find_customer_source_by_external_id(self, source: str, external_id: str) -> CustomerSource | None: ...

    def find_customer_by_email(self, org_id: str, email: str) -> Customer | None: ...

    def find_customer_source_by_external_email(self, email: str) -> CustomerSource | None: ...

    def find_customers_by_name(self, org_id: str, name: str, limit: int | None = 5) -> list[Customer]: ...

    def create_customer(self, org_id: str, email: str | None, name: str | None) -> str: ...

    def upsert_customer_source(
        self,
        customer_id: str,
        source: str,
        external_id: str,
        external_email: str | None = None,
        external_name: str | None = None,
    ) -> None: ...

    def insert_conflict(
        self,
        org_id: str,
        customer_a_id: str,
        customer_b_id: str,
        match_field: str,
        match_value: str,
        confidence: float,
        import_id: str | None = None,
    ) -> str: ...

    def find_existing_conflict(self, customer_a_id: str, customer_b_id: str) -> bool: ...

    def get_customers(self, customer_ids: Iterable[str]) -> list[Customer]: ...

    def list_conflicts(self, org_id: str, status: Optional[str] = None) -> list[StitchingConflict]: ...


# ---------------------------------------------------------------------------
# Persistence: Import Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IImportStore(Protocol):
    """Import history plus the per-source record tables rows land in."""

    def create_import(self, record: ImportRecord) -> str: ...

    def update_import(self, import_id: str, **fields: Any) -> None: ...

    def get_import(self, import_id: str) -> ImportRecord | None: ...

    def insert_source_record(self, table: str, fields: dict[str, Any]) -> str: ...

    def find_customer_ids_for_import(self, import_id: str) -> set[str]: ...


# ---------------------------------------------------------------------------
# Persistence: Mapping Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IMappingStore(Protocol):
    """Saved column mapping templates."""

    def save_mapping(self, mapping: SavedMapping) -> SavedMapping: ...

    def list_mappings(self, source: str) -> list[SavedMapping]: ...

    def delete_mapping(self, mapping_id: str) -> None: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# Coordination: Lock Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ILockBackend(Protocol):
    """Named mutual exclusion around identity match-or-create."""

    def hold(self, key: str, timeout: float) -> AbstractContextManager[None]: ...
