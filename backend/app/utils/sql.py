"""
SQL utilities for consistent handling of query results.

COUNT results may come back as int or as a 1-tuple/Row depending on the
SQLModel/SQLAlchemy version; scalar_int() coerces either to int.
"""
from typing import Any


def scalar_int(x: Any) -> int:
    """Convert COUNT/aggregate result to int. Handles int or 1-tuple/Row."""
    try:
        return int(x[0])
    except (TypeError, IndexError):
        return int(x)
