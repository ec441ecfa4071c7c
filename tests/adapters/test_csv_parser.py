"""Tests for the forgiving tabular parser."""

from src.adapters.ingesters import parse_csv, split_csv_line


class TestSplitCsvLine:
    """Quote-aware field splitting."""

    def test_plain_fields_are_trimmed(self):
        assert split_csv_line(" a , b,c ") == ["a", "b", "c"]

    def test_delimiter_inside_quotes(self):
        assert split_csv_line('"Smith, John",30') == ["Smith, John", "30"]

    def test_empty_fields_kept(self):
        assert split_csv_line("a,,c,") == ["a", "", "c", ""]


class TestParseCsv:
    """Header and row extraction."""

    def test_basic_table(self):
        table = parse_csv("Title,Content\nCurfew,10pm\nMeals,In the dining room\n")
        assert table.headers == ["Title", "Content"]
        assert table.rows == [
            {"Title": "Curfew", "Content": "10pm"},
            {"Title": "Meals", "Content": "In the dining room"},
        ]
        assert table.dropped_count == 0

    def test_crlf_and_blank_lines(self):
        table = parse_csv("Title,Content\r\n\r\nCurfew,10pm\r\n   \r\n")
        assert len(table.rows) == 1

    def test_mismatched_lines_dropped_not_misaligned(self):
        table = parse_csv("Name,Phone\nAnn,555\nBo\nCy,777,extra\n")
        assert [row["Name"] for row in table.rows] == ["Ann"]
        assert table.dropped_count == 2

    def test_header_only_is_empty(self):
        table = parse_csv("Title,Content\n")
        assert table.is_empty()
        assert table.headers == []

    def test_empty_text(self):
        assert parse_csv("").is_empty()
        assert parse_csv(None).is_empty()

    def test_quoted_cell_with_comma(self):
        table = parse_csv('Meal Type,Items\nLunch,"Soup, Bread"\n')
        assert table.rows[0]["Items"] == "Soup, Bread"
