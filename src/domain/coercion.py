"""Coercion Primitives.

Named default policies for turning untyped cell values into typed fields.
Every function here accepts whatever a CSV cell or a JSON diff value can be
(str, number, bool, list, None) and never raises: unparseable input resolves
to the documented default instead, so one malformed cell never blocks a file.

Policies:
    - Date: general date parser; invalid or empty -> None
    - Boolean: TRUTHY_VALUES -> True, FALSY_VALUES -> False, anything else -> None
    - Delimited list: split on comma, semicolon or pipe; trim; drop empties
    - Enumerated value: lowercase + trim, look up alias map, else kind default
    - Integer: leading integer digits, else default
    - Free text: trimmed text, else named default
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import pandas as pd

from src.domain.entity_kinds import FALSY_VALUES, TRUTHY_VALUES

logger = logging.getLogger(__name__)

LIST_DELIMITERS = re.compile(r"[,;|]")
LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def is_blank(value: Any) -> bool:
    """Return True for None, empty/whitespace strings and empty lists."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the same basis parse_date returns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a date/time value, returning a naive UTC datetime or None.

    Parameters:
        value: Date string in any format pandas understands, or a datetime

    Returns:
        Optional[datetime]: Parsed value, or None when empty or unparseable
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    try:
        timestamp = pd.to_datetime(value, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if not isinstance(timestamp, pd.Timestamp) or pd.isna(timestamp):
        return None
    if timestamp.tzinfo is not None:
        timestamp = timestamp.tz_convert("UTC").tz_localize(None)
    return timestamp.to_pydatetime()


def parse_bool(value: Any) -> Optional[bool]:
    """Parse a yes/no style value.

    None is returned for anything outside the truthy and falsy token sets;
    it means "unspecified" and is deliberately distinct from False.
    """
    if isinstance(value, bool):
        return value
    if is_blank(value):
        return None
    token = str(value).strip().lower()
    if token in TRUTHY_VALUES:
        return True
    if token in FALSY_VALUES:
        return False
    return None


def parse_list(value: Any) -> list[str]:
    """Split a delimited value into trimmed, non-empty tokens.

    JSON arrays (from a diff) are accepted as-is, element by element.
    """
    if is_blank(value):
        return []
    if isinstance(value, (list, tuple)):
        tokens = [str(item).strip() for item in value if item is not None]
    else:
        tokens = [token.strip() for token in LIST_DELIMITERS.split(str(value))]
    return [token for token in tokens if token]


def parse_int(value: Any, default: int = 0) -> int:
    """Parse the leading integer of a value ("12 - urgent" -> 12)."""
    if is_blank(value) or isinstance(value, bool):
        return default
    match = LEADING_INT.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def snap_alias(value: Any, aliases: Mapping[str, str], default: str) -> str:
    """Snap a free-form value onto a closed value set via an alias map.

    Parameters:
        value: Raw value
        aliases: Lowercase alias -> canonical value
        default: Canonical value used when the alias is unknown

    Returns:
        str: Canonical value
    """
    if is_blank(value):
        return default
    canonical = aliases.get(str(value).strip().lower())
    if canonical is None:
        logger.debug(f"Unrecognised value '{value}', falling back to '{default}'")
        return default
    return canonical


def text_or_default(value: Any, default: Optional[str]) -> Optional[str]:
    """Return trimmed text, or the default when the value is empty."""
    if is_blank(value):
        return default
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value).strip()


def text_or_none(value: Any) -> Optional[str]:
    """Return trimmed text, or None when the value is empty."""
    return text_or_default(value, None)
