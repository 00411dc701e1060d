"""Source auto-detection: rank every registered schema by how well it fits."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from tailorloom.mapping.suggestions import generate_mapping_suggestions
from tailorloom.models.mapping import DetectionResult
from tailorloom.models.schema import SourceSchema
from tailorloom.schemas import SCHEMAS

AVG_WEIGHT = 0.4
COVERAGE_WEIGHT = 0.2
REQUIRED_WEIGHT = 0.4
MIN_CONFIDENCE = 0.5
MIN_GAP = 0.15


def score_schema(
    headers: Sequence[str], sample_rows: Sequence[Mapping[str, str]], schema: SourceSchema
) -> DetectionResult:
    suggestions = generate_mapping_suggestions(headers, schema, sample_rows)
    mapped = [s for s in suggestions if s.schema_field is not None]
    mapped_fields = {s.schema_field for s in mapped}

    avg_confidence = sum(s.confidence for s in mapped) / len(mapped) if mapped else 0.0
    coverage = len(mapped) / len(schema.fields) if schema.fields else 0.0

    required = schema.required_fields
    required_mapped = sum(1 for f in required if f.key in mapped_fields)
    required_coverage = required_mapped / len(required) if required else 1.0

    confidence = (
        AVG_WEIGHT * avg_confidence
        + COVERAGE_WEIGHT * coverage
        + REQUIRED_WEIGHT * required_coverage
    )
    return DetectionResult(
        source=schema.source,
        confidence=confidence,
        mapped_count=len(mapped),
        required_mapped=required_mapped,
        required_total=len(required),
    )


def detect_source(
    headers: Sequence[str],
    sample_rows: Sequence[Mapping[str, str]] = (),
    schemas: Iterable[SourceSchema] | None = None,
) -> list[DetectionResult]:
    """Score every schema and return results sorted by confidence, best first."""
    if schemas is None:
        schemas = SCHEMAS.values()
    results = [score_schema(headers, sample_rows, schema) for schema in schemas]
    return sorted(results, key=lambda r: r.confidence, reverse=True)


def is_confident_detection(results: Sequence[DetectionResult]) -> bool:
    """True when the top result is strong, complete, and clearly ahead of the runner-up."""
    if not results:
        return False
    top = results[0]
    if top.confidence < MIN_CONFIDENCE or top.required_mapped < top.required_total:
        return False
    if len(results) == 1:
        return True
    # rounding keeps 0.6 - 0.45 on the right side of the gap
    return round(top.confidence - results[1].confidence, 9) >= MIN_GAP
