"""Customer identity, source link, and stitching conflict models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConflictStatus(StrEnum):
    PENDING = "pending"
    MERGED = "merged"
    DISMISSED = "dismissed"
    SPLIT = "split"


class MatchedBy(StrEnum):
    EXTERNAL_ID = "external_id"
    EMAIL = "email"
    NAME = "name"
    NONE = "none"


class Customer(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    org_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class CustomerSource(BaseModel):
    """Link from a customer to their identity in one external source."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    customer_id: str
    source: str
    external_id: str
    external_email: Optional[str] = None
    external_name: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class StitchingConflict(BaseModel):
    """A pending record that two customers may be the same person."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    org_id: str
    customer_a_id: str
    customer_b_id: str
    match_field: str
    match_value: str
    confidence: float
    status: ConflictStatus = ConflictStatus.PENDING
    import_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class StitchResult(BaseModel):
    customer_id: str
    is_new: bool
    matched_by: MatchedBy
