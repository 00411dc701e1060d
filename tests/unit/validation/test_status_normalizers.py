"""Tests for per-source status normalization."""

from __future__ import annotations

import pytest

from tailorloom.validation.normalizers import normalize_row_status, normalize_status


class TestNormalizeStatus:
    @pytest.mark.parametrize("raw,expected", [
        ("Paid", "succeeded"),
        ("complete", "succeeded"),
        (" processing ", "pending"),
        ("declined", "failed"),
        ("partially_refunded", "refunded"),
    ])
    def test_payment_vocabulary(self, raw, expected):
        assert normalize_status(raw, "stripe") == expected

    @pytest.mark.parametrize("raw,expected", [
        ("Active", "scheduled"),
        ("confirmed", "scheduled"),
        ("done", "completed"),
        ("Canceled", "cancelled"),
        ("No Show", "no_show"),
        ("noshow", "no_show"),
    ])
    def test_booking_vocabulary(self, raw, expected):
        assert normalize_status(raw, "calendly") == expected

    def test_unknown_passes_through_lowercased(self):
        assert normalize_status("On Hold", "stripe") == "on hold"

    def test_source_without_vocabulary(self):
        assert normalize_status("Paid", "passline") == "paid"

    def test_blank_and_none(self):
        assert normalize_status(None, "stripe") is None
        assert normalize_status("  ", "stripe") is None


class TestNormalizeRowStatus:
    def test_only_status_field_changes(self):
        row = {"status": "Paid", "name": "Paid"}
        assert normalize_row_status(row, "stripe") == {"status": "succeeded", "name": "Paid"}

    def test_row_without_status(self):
        row = {"name": "x"}
        result = normalize_row_status(row, "stripe")
        assert result == row
        assert result is not row
