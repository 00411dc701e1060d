"""Mapping suggestion engine: propose a schema field for every CSV header.

Scoring runs in two pure reductions:

1. every header is scored against every schema field through an ordered
   tuple of matcher strategies and keeps its best candidate;
2. many-to-one claims are resolved so each schema field is taken by at most
   one header (the highest confidence, first header in file order on ties).
"""

from __future__ import annotations

from typing import Callable, Mapping, NamedTuple, Optional, Sequence

from tailorloom.mapping.normalizer import normalize_header
from tailorloom.mapping.similarity import check_sample_pattern, dice_coefficient
from tailorloom.models.mapping import MappingSuggestion, MatchType
from tailorloom.models.schema import SchemaField, SourceSchema

EXACT_CONFIDENCE = 1.0
ALIAS_CONFIDENCE = 0.95
SIMILARITY_THRESHOLD = 0.6
SIMILARITY_CAP = 0.9
PATTERN_THRESHOLD = 0.3

SampleRows = Sequence[Mapping[str, str]]


class FieldMatch(NamedTuple):
    field: str
    confidence: float
    match_type: MatchType


FieldMatcher = Callable[[str, str, SchemaField, SampleRows], Optional[FieldMatch]]


def match_exact(header: str, normalized: str, field: SchemaField, sample_rows: SampleRows) -> FieldMatch | None:
    if normalized and normalized in (normalize_header(field.key), normalize_header(field.label)):
        return FieldMatch(field.key, EXACT_CONFIDENCE, MatchType.EXACT)
    return None


def match_alias(header: str, normalized: str, field: SchemaField, sample_rows: SampleRows) -> FieldMatch | None:
    if normalized and any(normalized == normalize_header(a) for a in field.aliases):
        return FieldMatch(field.key, ALIAS_CONFIDENCE, MatchType.ALIAS)
    return None


def match_similarity(header: str, normalized: str, field: SchemaField, sample_rows: SampleRows) -> FieldMatch | None:
    candidates = (field.key, field.label, *field.aliases)
    best = max(dice_coefficient(normalized, normalize_header(c)) for c in candidates)
    if best > SIMILARITY_THRESHOLD:
        return FieldMatch(field.key, min(best, SIMILARITY_CAP), MatchType.SIMILARITY)
    return None


def match_pattern(header: str, normalized: str, field: SchemaField, sample_rows: SampleRows) -> FieldMatch | None:
    if field.sample_pattern is None or not sample_rows:
        return None
    score = check_sample_pattern(sample_rows, header, field.sample_pattern)
    if score > PATTERN_THRESHOLD:
        return FieldMatch(field.key, score, MatchType.PATTERN)
    return None


# Evaluated in order; a decisive hit ends the search for that field.
FIELD_MATCHERS: tuple[FieldMatcher, ...] = (match_exact, match_alias, match_similarity, match_pattern)
DECISIVE_MATCHES = frozenset({MatchType.EXACT, MatchType.ALIAS})


def _better(candidate: FieldMatch | None, best: FieldMatch | None) -> bool:
    return candidate is not None and (best is None or candidate.confidence > best.confidence)


def score_field(header: str, normalized: str, field: SchemaField, sample_rows: SampleRows) -> FieldMatch | None:
    """Best match of one header against one field."""
    best: FieldMatch | None = None
    for matcher in FIELD_MATCHERS:
        hit = matcher(header, normalized, field, sample_rows)
        if _better(hit, best):
            best = hit
        if hit is not None and hit.match_type in DECISIVE_MATCHES:
            break
    return best


def best_field_for_header(header: str, schema: SourceSchema, sample_rows: SampleRows) -> FieldMatch | None:
    """Best match of one header across the schema, in field declaration order."""
    normalized = normalize_header(header)
    best: FieldMatch | None = None
    for field in schema.fields:
        hit = score_field(header, normalized, field, sample_rows)
        if _better(hit, best):
            best = hit
    return best


def score_headers(
    headers: Sequence[str], schema: SourceSchema, sample_rows: SampleRows
) -> list[tuple[str, FieldMatch | None]]:
    return [(h, best_field_for_header(h, schema, sample_rows)) for h in headers]


def resolve_conflicts(scored: Sequence[tuple[str, FieldMatch | None]]) -> list[MappingSuggestion]:
    """Keep one header per schema field; losers become unmapped."""
    winners: dict[str, int] = {}
    for idx, (_, match) in enumerate(scored):
        if match is None:
            continue
        current = winners.get(match.field)
        if current is None or match.confidence > scored[current][1].confidence:  # type: ignore[union-attr]
            winners[match.field] = idx

    suggestions: list[MappingSuggestion] = []
    for idx, (header, match) in enumerate(scored):
        if match is not None and winners[match.field] == idx:
            suggestions.append(MappingSuggestion(
                csv_header=header,
                schema_field=match.field,
                confidence=match.confidence,
                match_type=match.match_type,
            ))
        else:
            suggestions.append(MappingSuggestion(csv_header=header))
    return suggestions


def generate_mapping_suggestions(
    headers: Sequence[str], schema: SourceSchema, sample_rows: SampleRows = ()
) -> list[MappingSuggestion]:
    """One suggestion per header, in header order, injective over schema fields."""
    return resolve_conflicts(score_headers(headers, schema, sample_rows))


def suggestions_to_mapping(suggestions: Sequence[MappingSuggestion]) -> dict[str, str]:
    return {s.csv_header: s.schema_field for s in suggestions if s.schema_field is not None}
