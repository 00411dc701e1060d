"""CSV parse, validation, and import history models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from tailorloom.models.mapping import MappingSuggestion
from tailorloom.models.schema import SourceType


class ImportStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ParseError(BaseModel):
    row: int
    message: str


class ParseResult(BaseModel):
    headers: list[str]
    rows: list[dict[str, str]]
    sample_rows: list[dict[str, str]]
    total_rows: int
    errors: list[ParseError] = Field(default_factory=list)


class ValidationError(BaseModel):
    """A single field-level problem in a mapped row (row is 1-based)."""

    row: int
    field: str
    message: str
    value: Optional[str] = None


class ImportRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    org_id: str
    source: SourceType
    file_name: str
    file_size: int = 0
    status: ImportStatus = ImportStatus.PENDING
    total_rows: int = 0
    processed_rows: int = 0
    error_rows: int = 0
    skipped_rows: int = 0
    column_mapping: dict[str, str] = Field(default_factory=dict)
    errors: list[ValidationError] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ImportResult(BaseModel):
    import_id: str
    status: ImportStatus
    total_rows: int
    processed_rows: int
    error_rows: int
    skipped_rows: int
    new_customers: int = 0
    matched_customers: int = 0
    conflicts_flagged: int = 0
    errors: list[ValidationError] = Field(default_factory=list)


class PreviewResult(BaseModel):
    source: SourceType
    headers: list[str]
    total_rows: int
    valid_rows: int
    error_rows: int
    column_mapping: dict[str, str]
    suggestions: list[MappingSuggestion] = Field(default_factory=list)
    preview: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[ValidationError] = Field(default_factory=list)
    parse_errors: list[ParseError] = Field(default_factory=list)
