"""Column mapping suggestion, detection, and saved template models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from tailorloom.models.schema import SourceType


class MatchType(StrEnum):
    EXACT = "exact"
    ALIAS = "alias"
    SIMILARITY = "similarity"
    PATTERN = "pattern"
    NONE = "none"


class MappingSuggestion(BaseModel):
    """Proposed schema field for a single CSV header."""

    csv_header: str
    schema_field: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    match_type: MatchType = MatchType.NONE


class DetectionResult(BaseModel):
    """How well a CSV's headers fit one source schema."""

    source: SourceType
    confidence: float
    mapped_count: int
    required_mapped: int
    required_total: int


class SavedMapping(BaseModel):
    """A reusable header -> field mapping template for a source."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    source: SourceType
    name: str
    column_mapping: dict[str, str]
    sample_headers: list[str] = Field(default_factory=list)
    is_default: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
