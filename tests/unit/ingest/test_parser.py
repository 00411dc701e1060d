"""Tests for CSV parsing."""

from __future__ import annotations

from tailorloom.ingest.parser import parse_csv_content


class TestParseCsvContent:
    def test_headers_trimmed_and_rows_keyed(self):
        result = parse_csv_content(" Email , Name \na@b.co,Ann\n")
        assert result.headers == ["Email", "Name"]
        assert result.rows == [{"Email": "a@b.co", "Name": "Ann"}]
        assert result.total_rows == 1
        assert result.errors == []

    def test_blank_lines_skipped(self):
        result = parse_csv_content("A,B\n\n1,2\n , \n3,4\n")
        assert result.rows == [{"A": "1", "B": "2"}, {"A": "3", "B": "4"}]

    def test_quoted_fields(self):
        result = parse_csv_content('Amount,Note\n"$1,234.56","said ""hi"""\n')
        assert result.rows[0] == {"Amount": "$1,234.56", "Note": 'said "hi"'}

    def test_sample_rows_limited(self):
        content = "A\n" + "\n".join(str(i) for i in range(8))
        result = parse_csv_content(content)
        assert len(result.sample_rows) == 5
        assert result.total_rows == 8

    def test_custom_sample_size(self):
        result = parse_csv_content("A\n1\n2\n3\n", sample_size=2)
        assert [r["A"] for r in result.sample_rows] == ["1", "2"]

    def test_too_few_fields_reported_and_padded(self):
        result = parse_csv_content("A,B,C\n1,2\n")
        assert result.rows == [{"A": "1", "B": "2", "C": ""}]
        [error] = result.errors
        assert error.row == 1
        assert error.message.startswith("Too few fields")

    def test_too_many_fields_reported_and_truncated(self):
        result = parse_csv_content("A,B\n1,2\n3,4,5\n")
        assert result.rows[1] == {"A": "3", "B": "4"}
        [error] = result.errors
        assert error.row == 2
        assert error.message.startswith("Too many fields")

    def test_byte_order_mark_stripped(self):
        result = parse_csv_content("\ufeffEmail,Name\na@b.co,Ann\n")
        assert result.headers == ["Email", "Name"]

    def test_duplicate_headers_suffixed(self):
        result = parse_csv_content("Name,Name,Email\nA,B,c@d.co\n")
        assert result.headers == ["Name", "Name_1", "Email"]
        assert result.rows[0]["Name_1"] == "B"

    def test_empty_content(self):
        result = parse_csv_content("")
        assert result.headers == []
        assert result.rows == []
        assert result.total_rows == 0

    def test_malformed_record_dropped_and_parsing_continues(self):
        oversized = "x" * 200_000
        result = parse_csv_content(f"id,name\n1,a\n2,{oversized}\n3,c\n4,d\n")
        assert [r["id"] for r in result.rows] == ["1", "3", "4"]
        [error] = result.errors
        assert error.row == 2
        assert error.message.startswith("Malformed CSV")
