"""Source schema models: canonical fields each CSV source maps onto."""

from __future__ import annotations

from enum import StrEnum
from re import Pattern
from typing import Optional

from pydantic import BaseModel


class FieldType(StrEnum):
    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    TIMESTAMP = "timestamp"
    ENUM = "enum"


class SourceType(StrEnum):
    STRIPE = "stripe"
    CALENDLY = "calendly"
    PASSLINE = "passline"
    MANUAL = "manual"


class SchemaField(BaseModel):
    """A canonical field of a source schema."""

    model_config = {"frozen": True}

    key: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    aliases: tuple[str, ...] = ()
    sample_pattern: Optional[Pattern[str]] = None
    enum_values: tuple[str, ...] = ()
    description: str = ""


class SourceSchema(BaseModel):
    """Ordered field list for one source plus its identity field keys."""

    model_config = {"frozen": True}

    source: SourceType
    label: str
    fields: tuple[SchemaField, ...]
    id_field: str
    email_field: str
    name_field: str

    def field(self, key: str) -> SchemaField | None:
        for f in self.fields:
            if f.key == key:
                return f
        return None

    @property
    def required_fields(self) -> tuple[SchemaField, ...]:
        return tuple(f for f in self.fields if f.required)
