"""Build typed source records (payments, bookings, attendance) from mapped rows."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

from tailorloom.core.exceptions import UnknownSourceError
from tailorloom.models.records import SOURCE_TABLES
from tailorloom.models.schema import SourceType
from tailorloom.validation.validators import parse_currency, parse_timestamp

MappedRow = Mapping[str, Optional[str]]


def _timestamp(value: Optional[str], default: Optional[datetime] = None) -> Optional[datetime]:
    parsed = parse_timestamp(value) if value else None
    return parsed or default


def _payment(mapped: MappedRow, now: datetime) -> dict[str, Any]:
    return {
        "stripe_payment_id": mapped.get("stripe_payment_id"),
        "stripe_customer_id": mapped.get("stripe_customer_id"),
        "amount": parse_currency(mapped.get("amount") or "") or Decimal("0"),
        "currency": (mapped.get("currency") or "USD").upper(),
        "status": mapped.get("status") or "succeeded",
        "payment_date": _timestamp(mapped.get("payment_date"), now),
        "description": mapped.get("description"),
    }


def _booking(mapped: MappedRow, now: datetime) -> dict[str, Any]:
    return {
        "calendly_event_id": mapped.get("calendly_event_id"),
        "event_type": mapped.get("event_type"),
        "start_time": _timestamp(mapped.get("start_time"), now),
        "end_time": _timestamp(mapped.get("end_time")),
        "status": mapped.get("status") or "scheduled",
    }


def _attendance(mapped: MappedRow, now: datetime) -> dict[str, Any]:
    return {
        "passline_id": mapped.get("passline_id"),
        "event_name": mapped.get("event_name"),
        "check_in_time": _timestamp(mapped.get("check_in_time")),
    }


RECORD_BUILDERS: dict[str, Callable[[MappedRow, datetime], dict[str, Any]]] = {
    SourceType.STRIPE: _payment,
    SourceType.CALENDLY: _booking,
    SourceType.PASSLINE: _attendance,
}


def build_source_record(
    source: str,
    mapped: MappedRow,
    *,
    org_id: str,
    customer_id: str,
    import_id: str,
    raw_row: Mapping[str, str],
) -> tuple[str, dict[str, Any]]:
    """Return ``(table, fields)`` for one validated row."""
    builder = RECORD_BUILDERS.get(source)
    if builder is None:
        raise UnknownSourceError(source)
    fields = builder(mapped, datetime.now(timezone.utc))
    fields.update(
        org_id=org_id,
        customer_id=customer_id,
        import_id=import_id,
        raw_data=dict(raw_row),
    )
    return SOURCE_TABLES[source], fields
