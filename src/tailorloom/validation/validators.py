"""Apply a column mapping to raw rows and validate mapped values by field type."""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Mapping

from dateutil import parser as date_parser

from tailorloom.models.imports import ValidationError
from tailorloom.models.schema import FieldType, SchemaField, SourceSchema

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_CURRENCY_NOISE = re.compile(r"[$,\s]")
_NUMBER_NOISE = re.compile(r"[,\s]")
_NUMERIC_DATE = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2,4})")


def apply_mapping(raw_row: Mapping[str, str], mapping: Mapping[str, str]) -> dict[str, str | None]:
    """Project a raw row onto schema field keys; blank values become None."""
    mapped: dict[str, str | None] = {}
    for header, field_key in mapping.items():
        value = str(raw_row.get(header) or "").strip()
        mapped[field_key] = value or None
    return mapped


def _to_decimal(cleaned: str) -> Decimal | None:
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_currency(value: str) -> Decimal | None:
    """``"$1,234.56"`` -> ``Decimal("1234.56")``; None when not a finite number."""
    return _to_decimal(_CURRENCY_NOISE.sub("", value))


def parse_number(value: str) -> Decimal | None:
    return _to_decimal(_NUMBER_NOISE.sub("", value))


def _numeric_date(match: re.Match[str]) -> datetime | None:
    first, second, year = (int(g) for g in match.groups())
    if year < 100:
        year += 2000
    # month first; day first only when the month-first reading is impossible
    for month, day in ((first, second), (second, first)):
        try:
            return datetime(year, month, day)
        except ValueError:
            continue
    return None


def parse_timestamp(value: str) -> datetime | None:
    """Parse a date or date-time string, preferring month-first for ambiguous dates."""
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    try:
        return date_parser.parse(value, dayfirst=False)
    except (ValueError, OverflowError):
        pass
    match = _NUMERIC_DATE.search(value)
    return _numeric_date(match) if match else None


def _check_field(field: SchemaField, value: str) -> str | None:
    """Return an error message for a non-empty value, or None when it is valid."""
    if field.type is FieldType.EMAIL and not EMAIL_REGEX.match(value):
        return f'Invalid email format: "{value}"'
    if field.type is FieldType.NUMBER and parse_number(value) is None:
        return "Invalid number"
    if field.type is FieldType.CURRENCY and parse_currency(value) is None:
        return "Invalid currency amount"
    if field.type in (FieldType.DATE, FieldType.TIMESTAMP) and parse_timestamp(value) is None:
        return "Invalid date/time"
    if field.type is FieldType.ENUM and field.enum_values and value.lower() not in field.enum_values:
        return f'Invalid value "{value}". Expected: {", ".join(field.enum_values)}'
    return None


def validate_mapped_row(
    mapped_row: Mapping[str, str | None], schema: SourceSchema, row_index: int
) -> list[ValidationError]:
    """Collect every field error of one row; an empty list means the row is valid.

    ``row_index`` is 1-based and copied into each error.
    """
    errors: list[ValidationError] = []
    for field in schema.fields:
        value = (mapped_row.get(field.key) or "").strip()
        if not value:
            if field.required:
                errors.append(ValidationError(
                    row=row_index,
                    field=field.key,
                    message=f'Required field missing: "{field.label}"',
                    value="",
                ))
            continue

        message = _check_field(field, value)
        if message is not None:
            errors.append(ValidationError(row=row_index, field=field.key, message=message, value=value))
    return errors
