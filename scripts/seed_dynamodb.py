"""Create TailorLoom DynamoDB tables and seed default mapping templates.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from decimal import Decimal
from typing import Any

import boto3

from tailorloom.models.mapping import SavedMapping
from tailorloom.persistence.dynamodb_backend import MAPPINGS_TABLE, TABLE_NAMES
from tailorloom.schemas import SCHEMAS


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create every TailorLoom table. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for name in TABLE_NAMES:
        table_name = f"{name}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {table_name}")


def default_templates() -> list[SavedMapping]:
    """One default template per source, keyed on each field's display label."""
    return [
        SavedMapping(
            id=f"default-{schema.source}",
            source=schema.source,
            name=f"{schema.label} default export",
            column_mapping={f.label: f.key for f in schema.fields},
            sample_headers=[f.label for f in schema.fields],
            is_default=True,
        )
        for schema in SCHEMAS.values()
    ]


def _json_to_dynamodb(obj: Any) -> Any:
    """Convert JSON-parsed floats to Decimal for DynamoDB."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _json_to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_json_to_dynamodb(i) for i in obj]
    return obj


def seed_default_mappings(ddb: Any, suffix: str = "") -> None:
    tbl = ddb.Table(f"{MAPPINGS_TABLE}{suffix}")
    templates = default_templates()
    with tbl.batch_writer() as batch:
        for template in templates:
            body = _json_to_dynamodb(template.model_dump(mode="json"))
            batch.put_item(Item={"PK": f"SOURCE#{template.source}", "SK": f"MAPPING#{template.id}", **body})
            batch.put_item(Item={"PK": f"MAPPING#{template.id}", "SK": "POINTER", "source": str(template.source)})
    print(f"  Seeded {len(templates)} default mapping templates")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create and seed DynamoDB tables for TailorLoom")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    print("Seeding mapping templates...")
    seed_default_mappings(ddb, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
