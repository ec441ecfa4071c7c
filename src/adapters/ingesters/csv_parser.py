"""Tabular Parser for operator-authored CSV exports.

Spreadsheet exports from the front desk are small and loosely formatted, so
this parser is deliberately forgiving instead of strict:

    - Blank lines are dropped
    - The first non-blank line is the header row, split on the raw delimiter
    - Data lines are split quote-aware: a double quote toggles "inside quoted
      field" mode so delimiters inside quotes do not split (no escaped-quote
      handling)
    - A data line whose field count differs from the header's is dropped
      silently, never misaligned onto the wrong columns
    - Fewer than two non-blank lines means "no data": empty headers and rows

Architecture:
    - Pure function over text, no file or storage access
    - Rows are plain dicts keyed by the header names exactly as uploaded
"""

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DELIMITER = ","
QUOTE = '"'
LINE_BREAK = re.compile(r"\r?\n")


@dataclass
class ParsedTable:
    """Header row and data rows of one uploaded file.

    Attributes:
        headers: Trimmed header names in upload order
        rows: One dict per kept data line, header -> trimmed cell text
        dropped_count: Data lines discarded for a field-count mismatch
    """

    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    dropped_count: int = 0

    def is_empty(self) -> bool:
        """Return True when the upload yielded no data rows."""
        return not self.rows


def split_csv_line(line: str) -> list[str]:
    """Split one data line into trimmed fields, honouring double quotes.

    Example:
        ```python
        split_csv_line('"Smith, John",30')  # ['Smith, John', '30']
        ```
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == QUOTE:
            in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str) -> ParsedTable:
    """Parse CSV text into a header list and keyed rows.

    Parameters:
        text: Raw file content

    Returns:
        ParsedTable: Headers and rows; both empty when there is no data
    """
    lines = [line for line in LINE_BREAK.split(text or "") if line.strip()]
    if len(lines) < 2:
        return ParsedTable()

    headers = [header.strip() for header in lines[0].split(DELIMITER)]
    table = ParsedTable(headers=headers)

    for line_number, line in enumerate(lines[1:], start=2):
        values = split_csv_line(line)
        if len(values) != len(headers):
            table.dropped_count += 1
            logger.debug(
                f"Dropping line {line_number}: {len(values)} fields, header has {len(headers)}"
            )
            continue
        table.rows.append(dict(zip(headers, values)))

    if table.dropped_count:
        logger.info(f"Dropped {table.dropped_count} line(s) with a field count different from the header")

    return table
