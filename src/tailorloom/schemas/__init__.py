"""Registry of source schemas keyed by source type."""

from __future__ import annotations

from tailorloom.core.exceptions import UnknownSourceError
from tailorloom.models.schema import SourceSchema, SourceType
from tailorloom.schemas.calendly import CALENDLY_SCHEMA
from tailorloom.schemas.passline import PASSLINE_SCHEMA
from tailorloom.schemas.stripe import STRIPE_SCHEMA

SCHEMAS: dict[SourceType, SourceSchema] = {
    SourceType.STRIPE: STRIPE_SCHEMA,
    SourceType.CALENDLY: CALENDLY_SCHEMA,
    SourceType.PASSLINE: PASSLINE_SCHEMA,
}


def get_schema(source: str) -> SourceSchema:
    """Return the schema for a source, raising UnknownSourceError if none exists."""
    try:
        return SCHEMAS[SourceType(source)]
    except (KeyError, ValueError):
        raise UnknownSourceError(source) from None


__all__ = ["SCHEMAS", "get_schema"]
