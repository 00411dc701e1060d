"""CSV text parsing into header-keyed rows."""

from __future__ import annotations

import csv
import io

from tailorloom.models.imports import ParseError, ParseResult

SAMPLE_SIZE = 5


def _dedupe_headers(raw_headers: list[str]) -> list[str]:
    """Trim headers and suffix repeats (``name``, ``name_1``, ...)."""
    seen: dict[str, int] = {}
    headers: list[str] = []
    for raw in raw_headers:
        header = raw.strip()
        count = seen.get(header, 0)
        seen[header] = count + 1
        headers.append(header if count == 0 else f"{header}_{count}")
    return headers


def _is_blank(record: list[str]) -> bool:
    return not any(v.strip() for v in record)


def parse_csv_content(content: str, sample_size: int = SAMPLE_SIZE) -> ParseResult:
    """Parse CSV text whose first non-blank line is the header row.

    Blank lines are skipped. Rows with the wrong number of fields are kept
    (padded or truncated) and reported in ``errors`` with their 1-based row
    number. A record the csv module rejects is dropped and reported; parsing
    continues with the next line.
    """
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
    headers: list[str] = []
    rows: list[dict[str, str]] = []
    errors: list[ParseError] = []

    while True:
        # the reader resumes on the next line after a malformed record
        try:
            record = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            errors.append(ParseError(row=len(rows) + 1, message=f"Malformed CSV: {exc}"))
            continue

        if _is_blank(record):
            continue
        if not headers:
            headers = _dedupe_headers(record)
            continue

        row_number = len(rows) + 1
        if len(record) > len(headers):
            errors.append(ParseError(
                row=row_number,
                message=f"Too many fields: expected {len(headers)} fields but parsed {len(record)}",
            ))
        elif len(record) < len(headers):
            errors.append(ParseError(
                row=row_number,
                message=f"Too few fields: expected {len(headers)} fields but parsed {len(record)}",
            ))
        rows.append({h: (record[i] if i < len(record) else "") for i, h in enumerate(headers)})

    return ParseResult(
        headers=headers,
        rows=rows,
        sample_rows=rows[:sample_size],
        total_rows=len(rows),
        errors=errors,
    )
