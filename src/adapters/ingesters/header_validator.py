"""Header Validator.

Decides whether an uploaded header row plausibly belongs to the target entity
kind. The gate tolerates reordered, renamed or dropped optional columns while
still rejecting an upload aimed at the wrong table:

    valid iff (expected - missing) >= ceil(expected * 0.5) and missing <= 2

Comparison is case-insensitive and ignores surrounding whitespace; reported
column names keep their original casing so operators can find them.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

from src.domain.entity_kinds import EXPECTED_HEADERS, EntityKind

MIN_MATCH_RATIO = 0.5
MAX_MISSING_COLUMNS = 2


@dataclass
class ValidationVerdict:
    """Outcome of header validation.

    Attributes:
        valid: Whether the import may proceed
        expected: Expected headers for the kind (empty when ungated)
        received: Headers found in the upload
        missing_columns: Expected headers not present (expected casing)
        unexpected_columns: Uploaded headers not expected (uploaded casing)
    """

    valid: bool
    expected: list[str] = field(default_factory=list)
    received: list[str] = field(default_factory=list)
    missing_columns: list[str] = field(default_factory=list)
    unexpected_columns: list[str] = field(default_factory=list)


def _normalize(header: str) -> str:
    return header.strip().lower()


def validate_headers(
    headers: list[str],
    kind: EntityKind,
    expected_headers: Optional[dict[EntityKind, list[str]]] = None
) -> ValidationVerdict:
    """Validate parsed headers against the expected list for a kind.

    Parameters:
        headers: Header row as parsed from the upload
        kind: Target entity kind
        expected_headers: Override of the expected-header table (defaults to
            the import contract table)

    Returns:
        ValidationVerdict: Validity plus missing/unexpected detail
    """
    table = EXPECTED_HEADERS if expected_headers is None else expected_headers
    expected = table.get(kind)
    if not expected:
        # Kinds without a registered header list are not gated
        return ValidationVerdict(valid=True, received=list(headers))

    received_normalized = {_normalize(header) for header in headers}
    expected_normalized = {_normalize(header) for header in expected}

    missing = [header for header in expected if _normalize(header) not in received_normalized]
    unexpected = [header for header in headers if _normalize(header) not in expected_normalized]

    expected_count = len(expected)
    match_count = expected_count - len(missing)
    valid = (
        match_count >= math.ceil(expected_count * MIN_MATCH_RATIO)
        and len(missing) <= MAX_MISSING_COLUMNS
    )

    return ValidationVerdict(
        valid=valid,
        expected=list(expected),
        received=list(headers),
        missing_columns=missing,
        unexpected_columns=unexpected,
    )
