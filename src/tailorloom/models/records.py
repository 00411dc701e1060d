"""Source record tables that imported rows land in."""

from __future__ import annotations

from tailorloom.models.schema import SourceType

SOURCE_TABLES: dict[str, str] = {
    SourceType.STRIPE: "payments",
    SourceType.CALENDLY: "bookings",
    SourceType.PASSLINE: "attendance",
}

# natural unique key per table; a second row with the same key is a duplicate
SOURCE_RECORD_KEYS: dict[str, str] = {
    "payments": "stripe_payment_id",
    "bookings": "calendly_event_id",
    "attendance": "passline_id",
}
