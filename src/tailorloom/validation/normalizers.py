"""Per-source status vocabulary normalization."""

from __future__ import annotations

from tailorloom.models.schema import SourceType

PAYMENT_STATUS_MAP: dict[str, str] = {
    "succeeded": "succeeded",
    "paid": "succeeded",
    "complete": "succeeded",
    "completed": "succeeded",
    "pending": "pending",
    "processing": "pending",
    "failed": "failed",
    "declined": "failed",
    "refunded": "refunded",
    "partially_refunded": "refunded",
    "partially refunded": "refunded",
}

BOOKING_STATUS_MAP: dict[str, str] = {
    "scheduled": "scheduled",
    "active": "scheduled",
    "confirmed": "scheduled",
    "upcoming": "scheduled",
    "completed": "completed",
    "done": "completed",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "no_show": "no_show",
    "no show": "no_show",
    "noshow": "no_show",
    "no-show": "no_show",
}

STATUS_MAPS: dict[str, dict[str, str]] = {
    SourceType.STRIPE: PAYMENT_STATUS_MAP,
    SourceType.CALENDLY: BOOKING_STATUS_MAP,
}


def normalize_status(value: str | None, source: str) -> str | None:
    """Map a source-specific status onto the canonical vocabulary.

    Unknown statuses pass through lowercased so validation can report them.
    """
    if value is None:
        return None
    cleaned = value.strip().lower()
    if not cleaned:
        return None
    return STATUS_MAPS.get(source, {}).get(cleaned, cleaned)


def normalize_row_status(mapped_row: dict[str, str | None], source: str) -> dict[str, str | None]:
    """Return a copy of ``mapped_row`` with its ``status`` field normalized."""
    if "status" not in mapped_row:
        return dict(mapped_row)
    return {**mapped_row, "status": normalize_status(mapped_row["status"], source)}
