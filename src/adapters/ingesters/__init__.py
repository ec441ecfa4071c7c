"""Ingestion adapters for the concierge operations console.

This package turns operator-authored CSV exports into typed reference
records: a forgiving tabular parser, the header gate and the per-kind
import dispatch.
"""

from src.adapters.ingesters.csv_importer import CSVImporter, ImportOutcome
from src.adapters.ingesters.csv_parser import ParsedTable, parse_csv, split_csv_line
from src.adapters.ingesters.header_validator import ValidationVerdict, validate_headers

__all__ = [
    "CSVImporter",
    "ImportOutcome",
    "ParsedTable",
    "ValidationVerdict",
    "parse_csv",
    "split_csv_line",
    "validate_headers",
]
