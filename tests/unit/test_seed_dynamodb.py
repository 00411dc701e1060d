"""Tests for the DynamoDB table creation and seed script."""

from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from tailorloom.persistence.dynamodb_backend import DynamoDBMappingStore

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from seed_dynamodb import create_tables, default_templates, seed_default_mappings  # noqa: E402


@pytest.fixture
def ddb(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    with mock_aws():
        yield boto3.resource("dynamodb", region_name="us-east-1")


class TestCreateTables:
    def test_creates_all_six_tables(self, ddb):
        create_tables(ddb, suffix="-test")
        client = boto3.client("dynamodb", region_name="us-east-1")
        tables = client.list_tables()["TableNames"]
        assert len(tables) == 6
        assert "tailorloom-customers-test" in tables

    def test_idempotent_skips_existing(self, ddb):
        create_tables(ddb, suffix="-test")
        create_tables(ddb, suffix="-test")
        client = boto3.client("dynamodb", region_name="us-east-1")
        assert len(client.list_tables()["TableNames"]) == 6


class TestSeedDefaultMappings:
    def test_one_default_per_source(self):
        templates = default_templates()
        assert {t.source for t in templates} == {"stripe", "calendly", "passline"}
        assert all(t.is_default for t in templates)

    def test_templates_map_labels_to_keys(self):
        stripe = next(t for t in default_templates() if t.source == "stripe")
        assert stripe.column_mapping["Payment ID"] == "stripe_payment_id"
        assert stripe.sample_headers[0] == "Payment ID"

    def test_seeded_templates_readable_by_store(self, ddb):
        create_tables(ddb, suffix="-test")
        seed_default_mappings(ddb, suffix="-test")
        store = DynamoDBMappingStore(table_suffix="-test", region="us-east-1")
        [template] = store.list_mappings("calendly")
        assert template.id == "default-calendly"
        assert template.is_default
