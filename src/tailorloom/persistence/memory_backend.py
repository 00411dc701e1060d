"""In-memory backends: dict-backed stores for tests and single-process runs."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional
from uuid import uuid4

from tailorloom.core.exceptions import DuplicateRecordError, LockError, MappingNotFoundError
from tailorloom.models.identity import Customer, CustomerSource, StitchingConflict
from tailorloom.models.imports import ImportRecord
from tailorloom.models.mapping import SavedMapping
from tailorloom.models.records import SOURCE_RECORD_KEYS


class MemoryIdentityStore:
    """Dict-backed IIdentityStore."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._customers: dict[str, Customer] = {}
        self._sources: dict[tuple[str, str], CustomerSource] = {}
        self._conflicts: dict[str, StitchingConflict] = {}

    def find_customer_source_by_external_id(self, source: str, external_id: str) -> CustomerSource | None:
        return self._sources.get((source, external_id))

    def find_customer_by_email(self, org_id: str, email: str) -> Customer | None:
        for customer in self._customers.values():
            if customer.org_id == org_id and customer.email == email:
                return customer
        return None

    def find_customer_source_by_external_email(self, email: str) -> CustomerSource | None:
        for link in self._sources.values():
            if link.external_email == email:
                return link
        return None

    def find_customers_by_name(self, org_id: str, name: str, limit: int | None = 5) -> list[Customer]:
        wanted = name.strip().casefold()
        matches = [
            c for c in self._customers.values()
            if c.org_id == org_id and c.name is not None and c.name.strip().casefold() == wanted
        ]
        return matches if limit is None else matches[:limit]

    def create_customer(self, org_id: str, email: str | None, name: str | None) -> str:
        with self._lock:
            if email is not None and self.find_customer_by_email(org_id, email) is not None:
                raise DuplicateRecordError("customers", f"{org_id}/{email}")
            customer = Customer(org_id=org_id, email=email, name=name)
            self._customers[customer.id] = customer
        return customer.id

    def upsert_customer_source(
        self,
        customer_id: str,
        source: str,
        external_id: str,
        external_email: str | None = None,
        external_name: str | None = None,
    ) -> None:
        with self._lock:
            existing = self._sources.get((source, external_id))
            link = CustomerSource(
                customer_id=customer_id,
                source=source,
                external_id=external_id,
                external_email=external_email,
                external_name=external_name,
            )
            if existing is not None:
                link = link.model_copy(update={"id": existing.id, "created_at": existing.created_at})
            self._sources[(source, external_id)] = link

    def insert_conflict(
        self,
        org_id: str,
        customer_a_id: str,
        customer_b_id: str,
        match_field: str,
        match_value: str,
        confidence: float,
        import_id: str | None = None,
    ) -> str:
        conflict = StitchingConflict(
            org_id=org_id,
            customer_a_id=customer_a_id,
            customer_b_id=customer_b_id,
            match_field=match_field,
            match_value=match_value,
            confidence=confidence,
            import_id=import_id,
        )
        with self._lock:
            self._conflicts[conflict.id] = conflict
        return conflict.id

    def find_existing_conflict(self, customer_a_id: str, customer_b_id: str) -> bool:
        pair = {customer_a_id, customer_b_id}
        return any({c.customer_a_id, c.customer_b_id} == pair for c in self._conflicts.values())

    def get_customers(self, customer_ids: Iterable[str]) -> list[Customer]:
        return [self._customers[cid] for cid in customer_ids if cid in self._customers]

    def list_conflicts(self, org_id: str, status: Optional[str] = None) -> list[StitchingConflict]:
        return [
            c for c in self._conflicts.values()
            if c.org_id == org_id and (status is None or c.status == status)
        ]


class MemoryImportStore:
    """Dict-backed IImportStore."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._imports: dict[str, ImportRecord] = {}
        self._records: dict[str, dict[str, dict[str, Any]]] = {}

    def create_import(self, record: ImportRecord) -> str:
        self._imports[record.id] = record
        return record.id

    def update_import(self, import_id: str, **fields: Any) -> None:
        current = self._imports[import_id]
        self._imports[import_id] = current.model_copy(update=fields)

    def get_import(self, import_id: str) -> ImportRecord | None:
        return self._imports.get(import_id)

    def insert_source_record(self, table: str, fields: dict[str, Any]) -> str:
        key_field = SOURCE_RECORD_KEYS.get(table)
        with self._lock:
            rows = self._records.setdefault(table, {})
            key = fields.get(key_field) if key_field else None
            if key is not None and any(r.get(key_field) == key for r in rows.values()):
                raise DuplicateRecordError(table, f"{key_field}={key}")
            record_id = str(uuid4())
            rows[record_id] = {**fields, "id": record_id}
        return record_id

    def find_customer_ids_for_import(self, import_id: str) -> set[str]:
        return {
            r["customer_id"]
            for rows in self._records.values()
            for r in rows.values()
            if r.get("import_id") == import_id and r.get("customer_id")
        }

    def records(self, table: str) -> list[dict[str, Any]]:
        return list(self._records.get(table, {}).values())


class MemoryMappingStore:
    """Dict-backed IMappingStore."""

    def __init__(self) -> None:
        self._mappings: dict[str, SavedMapping] = {}

    def save_mapping(self, mapping: SavedMapping) -> SavedMapping:
        self._mappings[mapping.id] = mapping
        return mapping

    def list_mappings(self, source: str) -> list[SavedMapping]:
        return [m for m in self._mappings.values() if m.source == source]

    def delete_mapping(self, mapping_id: str) -> None:
        if self._mappings.pop(mapping_id, None) is None:
            raise MappingNotFoundError(f"No saved mapping {mapping_id!r}")


class MemoryCacheBackend:
    """Dict-backed ICacheBackend."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class MemoryLockBackend:
    """Per-key threading locks implementing ILockBackend.

    A key's lock lives only while some thread holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> (lock, holders plus waiters)
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @property
    def active_keys(self) -> int:
        return len(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock, users = self._locks.get(key, (threading.Lock(), 0))
            self._locks[key] = (lock, users + 1)
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, key: str, timeout: float) -> Iterator[None]:
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=timeout):
                raise LockError(f"Timed out after {timeout}s waiting for lock {key!r}")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)
