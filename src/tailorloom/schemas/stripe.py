"""Stripe payments export schema."""

from __future__ import annotations

import re

from tailorloom.models.schema import FieldType, SchemaField, SourceSchema, SourceType

STRIPE_SCHEMA = SourceSchema(
    source=SourceType.STRIPE,
    label="Stripe",
    id_field="stripe_customer_id",
    email_field="email",
    name_field="name",
    fields=(
        SchemaField(
            key="stripe_payment_id",
            label="Payment ID",
            required=True,
            aliases=("id", "charge id", "payment intent id", "transaction id"),
            sample_pattern=re.compile(r"^(ch|pi|py)_[A-Za-z0-9]+$"),
            description="Charge or payment intent identifier",
        ),
        SchemaField(
            key="stripe_customer_id",
            label="Customer ID",
            aliases=("customer", "customer id"),
            sample_pattern=re.compile(r"^cus_[A-Za-z0-9]+$"),
        ),
        SchemaField(
            key="email",
            label="Email",
            type=FieldType.EMAIL,
            aliases=("email address", "customer email", "receipt email"),
            sample_pattern=re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
        ),
        SchemaField(
            key="name",
            label="Name",
            aliases=("full_name", "customer name", "billing name", "card name"),
        ),
        SchemaField(
            key="amount",
            label="Amount",
            type=FieldType.CURRENCY,
            required=True,
            aliases=("gross", "total", "converted amount"),
            sample_pattern=re.compile(r"^\$?-?[\d,]+(\.\d{1,2})?$"),
        ),
        SchemaField(
            key="currency",
            label="Currency",
            aliases=("currency code", "converted currency"),
            sample_pattern=re.compile(r"^[A-Za-z]{3}$"),
        ),
        SchemaField(
            key="status",
            label="Status",
            type=FieldType.ENUM,
            enum_values=("succeeded", "pending", "failed", "refunded"),
            aliases=("payment status", "charge status"),
        ),
        SchemaField(
            key="payment_date",
            label="Payment Date",
            type=FieldType.TIMESTAMP,
            required=True,
            aliases=("created", "created utc", "created date utc", "date"),
        ),
        SchemaField(
            key="description",
            label="Description",
            aliases=("statement descriptor", "memo"),
        ),
    ),
)
