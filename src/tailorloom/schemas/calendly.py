"""Calendly scheduled events export schema."""

from __future__ import annotations

import re

from tailorloom.models.schema import FieldType, SchemaField, SourceSchema, SourceType

CALENDLY_SCHEMA = SourceSchema(
    source=SourceType.CALENDLY,
    label="Calendly",
    id_field="invitee_id",
    email_field="email",
    name_field="name",
    fields=(
        SchemaField(
            key="calendly_event_id",
            label="Event UUID",
            required=True,
            aliases=("event id", "event uri", "scheduled event uuid"),
            sample_pattern=re.compile(
                r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
            ),
        ),
        SchemaField(
            key="invitee_id",
            label="Invitee UUID",
            aliases=("invitee id", "invitee uri"),
        ),
        SchemaField(
            key="email",
            label="Invitee Email",
            type=FieldType.EMAIL,
            required=True,
            aliases=("email", "email address"),
            sample_pattern=re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
        ),
        SchemaField(
            key="name",
            label="Invitee Name",
            aliases=("name", "full name"),
        ),
        SchemaField(
            key="event_type",
            label="Event Type Name",
            aliases=("event type", "event name"),
        ),
        SchemaField(
            key="start_time",
            label="Start Date & Time",
            type=FieldType.TIMESTAMP,
            required=True,
            aliases=("start time", "start date", "event start"),
        ),
        SchemaField(
            key="end_time",
            label="End Date & Time",
            type=FieldType.TIMESTAMP,
            aliases=("end time", "end date", "event end"),
        ),
        SchemaField(
            key="status",
            label="Status",
            type=FieldType.ENUM,
            enum_values=("scheduled", "completed", "cancelled", "no_show"),
            aliases=("event status", "booking status"),
        ),
    ),
)
