"""Operations API for the concierge console.

This module provides the FastAPI backend the operator console talks to:
bulk CSV import, instruction-driven smart updates, table snapshots and
record counts.
"""

__version__ = "1.0.0"
