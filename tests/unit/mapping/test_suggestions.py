"""Tests for the mapping suggestion engine."""

from __future__ import annotations

import re

import pytest

from tailorloom.mapping.suggestions import (
    FieldMatch,
    generate_mapping_suggestions,
    resolve_conflicts,
    suggestions_to_mapping,
)
from tailorloom.models.mapping import MatchType
from tailorloom.models.schema import FieldType, SchemaField, SourceSchema, SourceType
from tailorloom.schemas import SCHEMAS
from tailorloom.schemas.stripe import STRIPE_SCHEMA

PAYMENTS = SourceSchema(
    source=SourceType.STRIPE,
    label="Payments",
    id_field="external_id",
    email_field="email",
    name_field="name",
    fields=(
        SchemaField(key="email", label="Email", type=FieldType.EMAIL, aliases=("email address",)),
        SchemaField(key="name", label="Name", aliases=("full_name",)),
        SchemaField(key="amount", label="Amount", type=FieldType.CURRENCY, required=True),
        SchemaField(key="reference", label="Reference", sample_pattern=re.compile(r"^REF-\d+$")),
    ),
)


def _by_header(suggestions):
    return {s.csv_header: s for s in suggestions}


class TestGenerateMappingSuggestions:
    def test_alias_and_similarity_scenario(self):
        headers = ["Email Address", "full_name", "Amount Paid"]
        result = _by_header(generate_mapping_suggestions(headers, PAYMENTS))

        assert result["Email Address"].schema_field == "email"
        assert result["Email Address"].match_type == MatchType.ALIAS
        assert result["Email Address"].confidence == 0.95

        assert result["full_name"].schema_field == "name"
        assert result["full_name"].match_type == MatchType.ALIAS

        assert result["Amount Paid"].schema_field == "amount"
        assert result["Amount Paid"].match_type == MatchType.SIMILARITY
        assert result["Amount Paid"].confidence == pytest.approx(2 / 3)

    def test_one_suggestion_per_header_in_order(self):
        headers = ["Amount", "Mystery", "Email"]
        suggestions = generate_mapping_suggestions(headers, PAYMENTS)
        assert [s.csv_header for s in suggestions] == headers

    def test_exact_match_beats_similarity(self):
        suggestions = generate_mapping_suggestions(["Emails", "Email"], PAYMENTS)
        assert suggestions[0].schema_field is None
        assert suggestions[0].match_type == MatchType.NONE
        assert suggestions[0].confidence == 0.0
        assert suggestions[1].schema_field == "email"
        assert suggestions[1].match_type == MatchType.EXACT
        assert suggestions[1].confidence == 1.0

    def test_similarity_is_capped(self):
        [suggestion] = generate_mapping_suggestions(["Amounts"], PAYMENTS)
        assert suggestion.match_type == MatchType.SIMILARITY
        assert suggestion.confidence == 0.9

    def test_weak_similarity_is_unmapped(self):
        [suggestion] = generate_mapping_suggestions(["Amt"], PAYMENTS)
        assert suggestion.schema_field is None

    def test_pattern_match_from_samples(self):
        rows = [{"Col A": "REF-1"}, {"Col A": "REF-22"}, {"Col A": "other"}]
        [suggestion] = generate_mapping_suggestions(["Col A"], PAYMENTS, rows)
        assert suggestion.schema_field == "reference"
        assert suggestion.match_type == MatchType.PATTERN
        assert suggestion.confidence == pytest.approx(2 / 3 * 0.85)

    def test_pattern_ignored_without_samples(self):
        [suggestion] = generate_mapping_suggestions(["Col A"], PAYMENTS)
        assert suggestion.schema_field is None

    def test_duplicate_headers_keep_first(self):
        suggestions = generate_mapping_suggestions(["Email", "email"], PAYMENTS)
        assert suggestions[0].schema_field == "email"
        assert suggestions[1].schema_field is None

    @pytest.mark.parametrize("headers", [
        ["id", "Customer ID", "Customer Email", "Customer Name", "Amount", "Currency", "Status", "Created (UTC)"],
        ["Email", "E-mail", "Email Address", "email_address", "Customer Email"],
        ["Amount", "Amount Paid", "Amounts", "Total", "Gross"],
        ["Name", "Full Name", "full_name", "Customer Name", "Billing Name"],
    ])
    def test_injective_on_every_schema(self, headers):
        for schema in SCHEMAS.values():
            fields = [s.schema_field for s in generate_mapping_suggestions(headers, schema) if s.schema_field]
            assert len(fields) == len(set(fields))

    def test_deterministic(self):
        headers = ["id", "Customer Email", "Amount Paid", "Created"]
        rows = [{"id": "ch_123", "Customer Email": "a@b.co", "Amount Paid": "$5.00", "Created": "2024-01-01"}]
        first = generate_mapping_suggestions(headers, STRIPE_SCHEMA, rows)
        second = generate_mapping_suggestions(headers, STRIPE_SCHEMA, rows)
        assert first == second


class TestResolveConflicts:
    def test_highest_confidence_claim_wins(self):
        scored = [
            ("A", FieldMatch("email", 0.7, MatchType.SIMILARITY)),
            ("B", FieldMatch("email", 0.95, MatchType.ALIAS)),
            ("C", None),
        ]
        result = resolve_conflicts(scored)
        assert [s.schema_field for s in result] == [None, "email", None]

    def test_tie_goes_to_first_header(self):
        scored = [
            ("A", FieldMatch("email", 0.8, MatchType.SIMILARITY)),
            ("B", FieldMatch("email", 0.8, MatchType.SIMILARITY)),
        ]
        result = resolve_conflicts(scored)
        assert [s.schema_field for s in result] == ["email", None]


class TestSuggestionsToMapping:
    def test_drops_unmapped(self):
        suggestions = generate_mapping_suggestions(["Email", "Mystery", "Amount"], PAYMENTS)
        assert suggestions_to_mapping(suggestions) == {"Email": "email", "Amount": "amount"}

    def test_empty(self):
        assert suggestions_to_mapping([]) == {}
