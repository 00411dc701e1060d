"""DynamoDB backends implementing the identity, import, and mapping stores.

Every table uses a PK/SK key schema. Secondary lookups (email, name, import)
are kept as index items in the same table so no GSIs are needed:

==========================  =====================================  ==============================
table                       PK                                     SK
==========================  =====================================  ==============================
tailorloom-customers        CUSTOMER#{id}                          PROFILE
                            ORG#{org}#EMAIL#{email}                CUSTOMER
                            ORG#{org}#NAME#{casefolded name}       CREATED#{iso}#{id}
tailorloom-customer-sources SOURCE#{source}                        EXT#{external_id}
                            EMAIL#{email}                          SOURCE#{source}#EXT#{id}
tailorloom-conflicts        ORG#{org}                              CONFLICT#{iso}#{id}
                            PAIR#{lower id}#{higher id}            CONFLICT#{id}
tailorloom-imports          IMPORT#{id}                            RECORD
tailorloom-source-records   TABLE#{table}                          KEY#{natural key} | ID#{id}
                            IMPORT#{import_id}                     RECORD#{table}#{id}
tailorloom-saved-mappings   SOURCE#{source}                        MAPPING#{id}
                            MAPPING#{id}                           POINTER
==========================  =====================================  ==============================
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional
from uuid import uuid4

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tailorloom.core.exceptions import DuplicateRecordError, MappingNotFoundError, StoreError
from tailorloom.core.protocols import ICacheBackend
from tailorloom.models.identity import Customer, CustomerSource, StitchingConflict
from tailorloom.models.imports import ImportRecord
from tailorloom.models.mapping import SavedMapping
from tailorloom.models.records import SOURCE_RECORD_KEYS

logger = structlog.get_logger(__name__)

CUSTOMERS_TABLE = "tailorloom-customers"
SOURCES_TABLE = "tailorloom-customer-sources"
CONFLICTS_TABLE = "tailorloom-conflicts"
IMPORTS_TABLE = "tailorloom-imports"
RECORDS_TABLE = "tailorloom-source-records"
MAPPINGS_TABLE = "tailorloom-saved-mappings"

TABLE_NAMES = (
    CUSTOMERS_TABLE,
    SOURCES_TABLE,
    CONFLICTS_TABLE,
    IMPORTS_TABLE,
    RECORDS_TABLE,
    MAPPINGS_TABLE,
)

_KEY_ATTRS = ("PK", "SK")


def _decode_decimals(item: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values in a DynamoDB item to int/float."""
    out: dict[str, Any] = {}
    for k, v in item.items():
        if isinstance(v, Decimal):
            out[k] = int(v) if v == int(v) else float(v)
        elif isinstance(v, dict):
            out[k] = _decode_decimals(v)
        elif isinstance(v, list):
            out[k] = [_decode_decimals(i) if isinstance(i, dict) else i for i in v]
        else:
            out[k] = v
    return out


def _to_dynamodb(obj: Any) -> Any:
    """Convert floats to Decimal and datetimes to ISO strings for DynamoDB."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: _to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_dynamodb(i) for i in obj]
    return obj


def _strip_keys(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k not in _KEY_ATTRS}


class _DynamoDBStore:
    """Shared boto3 resource wiring, table naming, and error wrapping."""

    def __init__(
        self,
        table_suffix: str = "",
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        max_attempts: int = 3,
    ) -> None:
        self._table_suffix = table_suffix
        kwargs: dict = {
            "region_name": region,
            "config": Config(
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries={"max_attempts": max_attempts},
            ),
        }
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    def _table(self, base: str):
        return self._ddb.Table(f"{base}{self._table_suffix}")

    def _call(self, op: str, fn, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB {op} failed: {exc}") from exc

    def _query_pk(
        self, table_base: str, pk: str, limit: int | None = None, sk_prefix: str | None = None
    ) -> list[dict[str, Any]]:
        """Query items with a given partition key, following pagination up to ``limit``."""
        tbl = self._table(table_base)
        condition = "PK = :pk"
        values: dict[str, Any] = {":pk": pk}
        if sk_prefix is not None:
            condition += " AND begins_with(SK, :sk)"
            values[":sk"] = sk_prefix
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": condition,
            "ExpressionAttributeValues": values,
        }
        items: list[dict[str, Any]] = []
        while True:
            if limit is not None:
                kwargs["Limit"] = limit - len(items)
            resp = self._call("query", tbl.query, **kwargs)
            items.extend(_decode_decimals(i) for i in resp.get("Items", []))
            last = resp.get("LastEvaluatedKey")
            if not last or (limit is not None and len(items) >= limit):
                return items
            kwargs["ExclusiveStartKey"] = last

    def _get_item(self, table_base: str, pk: str, sk: str) -> dict[str, Any] | None:
        """Get a single item by PK + SK. Returns None if not found."""
        tbl = self._table(table_base)
        resp = self._call("get_item", tbl.get_item, Key={"PK": pk, "SK": sk})
        item = resp.get("Item")
        return _decode_decimals(item) if item else None

    def _put_item(
        self, table_base: str, item: dict[str, Any], unique: str | None = None, kind: str | None = None
    ) -> None:
        """Put an item; with ``unique`` set, fail with DuplicateRecordError if the key exists."""
        tbl = self._table(table_base)
        kwargs: dict[str, Any] = {"Item": _to_dynamodb(item)}
        if unique is not None:
            kwargs["ConditionExpression"] = "attribute_not_exists(PK)"
        try:
            tbl.put_item(**kwargs)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise DuplicateRecordError(kind or table_base, unique or item["PK"]) from exc
            raise StoreError(f"DynamoDB put_item failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"DynamoDB put_item failed: {exc}") from exc

    def _delete_item(self, table_base: str, pk: str, sk: str) -> None:
        tbl = self._table(table_base)
        self._call("delete_item", tbl.delete_item, Key={"PK": pk, "SK": sk})


class DynamoDBIdentityStore(_DynamoDBStore):
    """IIdentityStore backed by the customers, customer-sources, and conflicts tables."""

    # ---- customers ----

    def _customer(self, customer_id: str) -> Customer | None:
        item = self._get_item(CUSTOMERS_TABLE, f"CUSTOMER#{customer_id}", "PROFILE")
        return Customer.model_validate(_strip_keys(item)) if item else None

    def find_customer_by_email(self, org_id: str, email: str) -> Customer | None:
        pointer = self._get_item(CUSTOMERS_TABLE, f"ORG#{org_id}#EMAIL#{email}", "CUSTOMER")
        return self._customer(pointer["customer_id"]) if pointer else None

    def find_customers_by_name(self, org_id: str, name: str, limit: int | None = 5) -> list[Customer]:
        pk = f"ORG#{org_id}#NAME#{name.strip().casefold()}"
        pointers = self._query_pk(CUSTOMERS_TABLE, pk, limit=limit)
        return self.get_customers(p["customer_id"] for p in pointers)

    def get_customers(self, customer_ids: Iterable[str]) -> list[Customer]:
        customers = (self._customer(cid) for cid in customer_ids)
        return [c for c in customers if c is not None]

    def create_customer(self, org_id: str, email: str | None, name: str | None) -> str:
        """Write the email pointer, profile, and name index items for a new customer.

        If any write after the pointer fails, the items already written are
        deleted before the error propagates, so a failed create never leaves
        an email pointer without a profile behind.
        """
        customer = Customer(org_id=org_id, email=email, name=name)
        written: list[tuple[str, str]] = []
        if email is not None:
            # the email pointer doubles as the (org, email) uniqueness guard
            pointer = (f"ORG#{org_id}#EMAIL#{email}", "CUSTOMER")
            self._put_item(
                CUSTOMERS_TABLE,
                {"PK": pointer[0], "SK": pointer[1], "customer_id": customer.id},
                unique=f"{org_id}/{email}",
                kind="customers",
            )
            written.append(pointer)
        try:
            profile = (f"CUSTOMER#{customer.id}", "PROFILE")
            self._put_item(CUSTOMERS_TABLE, {
                "PK": profile[0], "SK": profile[1], **customer.model_dump(mode="json"),
            })
            written.append(profile)
            if name:
                self._put_item(CUSTOMERS_TABLE, {
                    "PK": f"ORG#{org_id}#NAME#{name.strip().casefold()}",
                    "SK": f"CREATED#{customer.created_at.isoformat()}#{customer.id}",
                    "customer_id": customer.id,
                })
        except StoreError:
            self._rollback(written, customer.id)
            raise
        return customer.id

    def _rollback(self, keys: list[tuple[str, str]], customer_id: str) -> None:
        for pk, sk in reversed(keys):
            try:
                self._delete_item(CUSTOMERS_TABLE, pk, sk)
            except StoreError as exc:
                logger.error("customer_rollback_failed", customer_id=customer_id, pk=pk, sk=sk, error=str(exc))

    # ---- customer sources ----

    def find_customer_source_by_external_id(self, source: str, external_id: str) -> CustomerSource | None:
        item = self._get_item(SOURCES_TABLE, f"SOURCE#{source}", f"EXT#{external_id}")
        return CustomerSource.model_validate(_strip_keys(item)) if item else None

    def find_customer_source_by_external_email(self, email: str) -> CustomerSource | None:
        pointers = self._query_pk(SOURCES_TABLE, f"EMAIL#{email}", limit=1)
        if not pointers:
            return None
        return self.find_customer_source_by_external_id(pointers[0]["source"], pointers[0]["external_id"])

    def upsert_customer_source(
        self,
        customer_id: str,
        source: str,
        external_id: str,
        external_email: str | None = None,
        external_name: str | None = None,
    ) -> None:
        existing = self.find_customer_source_by_external_id(source, external_id)
        link = CustomerSource(
            customer_id=customer_id,
            source=source,
            external_id=external_id,
            external_email=external_email,
            external_name=external_name,
        )
        if existing is not None:
            link = link.model_copy(update={"id": existing.id, "created_at": existing.created_at})
        # single put keyed on (source, external_id): last writer wins, never two links
        self._put_item(SOURCES_TABLE, {
            "PK": f"SOURCE#{source}", "SK": f"EXT#{external_id}", **link.model_dump(mode="json"),
        })
        if existing is not None and existing.external_email and existing.external_email != external_email:
            self._delete_item(SOURCES_TABLE, f"EMAIL#{existing.external_email}", f"SOURCE#{source}#EXT#{external_id}")
        if external_email:
            self._put_item(SOURCES_TABLE, {
                "PK": f"EMAIL#{external_email}",
                "SK": f"SOURCE#{source}#EXT#{external_id}",
                "source": str(source),
                "external_id": external_id,
            })

    # ---- conflicts ----

    @staticmethod
    def _pair_pk(customer_a_id: str, customer_b_id: str) -> str:
        low, high = sorted((customer_a_id, customer_b_id))
        return f"PAIR#{low}#{high}"

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
        self._put_item(CONFLICTS_TABLE, {
            "PK": f"ORG#{org_id}",
            "SK": f"CONFLICT#{conflict.created_at.isoformat()}#{conflict.id}",
            **conflict.model_dump(mode="json"),
        })
        self._put_item(CONFLICTS_TABLE, {
            "PK": self._pair_pk(customer_a_id, customer_b_id),
            "SK": f"CONFLICT#{conflict.id}",
            "conflict_id": conflict.id,
        })
        return conflict.id

    def find_existing_conflict(self, customer_a_id: str, customer_b_id: str) -> bool:
        return bool(self._query_pk(CONFLICTS_TABLE, self._pair_pk(customer_a_id, customer_b_id), limit=1))

    def list_conflicts(self, org_id: str, status: Optional[str] = None) -> list[StitchingConflict]:
        items = self._query_pk(CONFLICTS_TABLE, f"ORG#{org_id}", sk_prefix="CONFLICT#")
        conflicts = [StitchingConflict.model_validate(_strip_keys(i)) for i in items]
        return [c for c in conflicts if status is None or c.status == status]


class DynamoDBImportStore(_DynamoDBStore):
    """IImportStore backed by the imports and source-records tables."""

    def create_import(self, record: ImportRecord) -> str:
        self._put_item(IMPORTS_TABLE, {
            "PK": f"IMPORT#{record.id}", "SK": "RECORD", **record.model_dump(mode="json"),
        })
        return record.id

    def get_import(self, import_id: str) -> ImportRecord | None:
        item = self._get_item(IMPORTS_TABLE, f"IMPORT#{import_id}", "RECORD")
        return ImportRecord.model_validate(_strip_keys(item)) if item else None

    def update_import(self, import_id: str, **fields: Any) -> None:
        current = self.get_import(import_id)
        if current is None:
            raise StoreError(f"Import {import_id!r} not found")
        updated = ImportRecord.model_validate({**current.model_dump(), **fields})
        self._put_item(IMPORTS_TABLE, {
            "PK": f"IMPORT#{import_id}", "SK": "RECORD", **updated.model_dump(mode="json"),
        })

    def insert_source_record(self, table: str, fields: dict[str, Any]) -> str:
        record_id = str(uuid4())
        key_field = SOURCE_RECORD_KEYS.get(table)
        key = fields.get(key_field) if key_field else None
        sk = f"KEY#{key}" if key is not None else f"ID#{record_id}"
        self._put_item(
            RECORDS_TABLE,
            {"PK": f"TABLE#{table}", "SK": sk, "id": record_id, **fields},
            unique=f"{key_field}={key}" if key is not None else None,
            kind=table,
        )
        if fields.get("import_id"):
            self._put_item(RECORDS_TABLE, {
                "PK": f"IMPORT#{fields['import_id']}",
                "SK": f"RECORD#{table}#{record_id}",
                "customer_id": fields.get("customer_id"),
            })
        return record_id

    def find_customer_ids_for_import(self, import_id: str) -> set[str]:
        items = self._query_pk(RECORDS_TABLE, f"IMPORT#{import_id}")
        return {i["customer_id"] for i in items if i.get("customer_id")}

    def records(self, table: str) -> list[dict[str, Any]]:
        return [_strip_keys(i) for i in self._query_pk(RECORDS_TABLE, f"TABLE#{table}")]


class DynamoDBMappingStore(_DynamoDBStore):
    """IMappingStore backed by DynamoDB with an optional cache of per-source listings."""

    CACHE_TTL = 300  # 5 minutes

    def __init__(self, *args: Any, cache: ICacheBackend | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._cache = cache

    @staticmethod
    def _cache_key(source: str) -> str:
        return f"saved_mappings:{source}"

    def _invalidate(self, source: str) -> None:
        if self._cache is not None:
            self._cache.delete(self._cache_key(source))

    def save_mapping(self, mapping: SavedMapping) -> SavedMapping:
        self._put_item(MAPPINGS_TABLE, {
            "PK": f"SOURCE#{mapping.source}", "SK": f"MAPPING#{mapping.id}", **mapping.model_dump(mode="json"),
        })
        self._put_item(MAPPINGS_TABLE, {
            "PK": f"MAPPING#{mapping.id}", "SK": "POINTER", "source": str(mapping.source),
        })
        self._invalidate(mapping.source)
        return mapping

    def list_mappings(self, source: str) -> list[SavedMapping]:
        cache_key = self._cache_key(source)

        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return [SavedMapping.model_validate(m) for m in json.loads(cached)]

        items = self._query_pk(MAPPINGS_TABLE, f"SOURCE#{source}", sk_prefix="MAPPING#")
        mappings = [SavedMapping.model_validate(_strip_keys(i)) for i in items]

        if self._cache is not None:
            self._cache.setex(cache_key, self.CACHE_TTL, json.dumps([m.model_dump(mode="json") for m in mappings]))

        return mappings

    def delete_mapping(self, mapping_id: str) -> None:
        pointer = self._get_item(MAPPINGS_TABLE, f"MAPPING#{mapping_id}", "POINTER")
        if pointer is None:
            raise MappingNotFoundError(f"No saved mapping {mapping_id!r}")
        self._delete_item(MAPPINGS_TABLE, f"SOURCE#{pointer['source']}", f"MAPPING#{mapping_id}")
        self._delete_item(MAPPINGS_TABLE, f"MAPPING#{mapping_id}", "POINTER")
        self._invalidate(pointer["source"])
        logger.debug("saved_mapping_deleted", mapping_id=mapping_id)
