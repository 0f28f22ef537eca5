"""
Core Utilities

Shared helpers used across the carriers.
"""
from datetime import datetime, timezone
from typing import Any, List


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def as_list(value: Any) -> List[Any]:
    """Providers return a single object where a list is expected when there is one entry."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
