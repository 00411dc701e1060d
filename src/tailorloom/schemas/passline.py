"""PassLine ticket check-in export schema."""

from __future__ import annotations

import re

from tailorloom.models.schema import FieldType, SchemaField, SourceSchema, SourceType

PASSLINE_SCHEMA = SourceSchema(
    source=SourceType.PASSLINE,
    label="PassLine",
    id_field="attendee_id",
    email_field="email",
    name_field="name",
    fields=(
        SchemaField(
            key="passline_id",
            label="Ticket ID",
            required=True,
            aliases=("ticket", "ticket number", "order id", "passline id"),
            sample_pattern=re.compile(r"^[A-Z]{2,4}-?\d{4,}$"),
        ),
        SchemaField(
            key="attendee_id",
            label="Attendee ID",
            aliases=("buyer id", "attendee"),
        ),
        SchemaField(
            key="email",
            label="Email",
            type=FieldType.EMAIL,
            aliases=("attendee email", "buyer email", "email address"),
            sample_pattern=re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
        ),
        SchemaField(
            key="name",
            label="Attendee Name",
            aliases=("name", "buyer name", "full name"),
        ),
        SchemaField(
            key="event_name",
            label="Event Name",
            required=True,
            aliases=("event", "show", "event title"),
        ),
        SchemaField(
            key="check_in_time",
            label="Check-in Time",
            type=FieldType.TIMESTAMP,
            aliases=("checked in at", "check in", "scanned at", "entry time"),
        ),
    ),
)
