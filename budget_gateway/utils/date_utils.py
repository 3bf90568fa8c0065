"""Date manipulation utilities"""

from datetime import date
from typing import Optional


def today() -> date:
    """Current local calendar date"""
    return date.today()


def date_portion(timestamp: Optional[str]) -> Optional[date]:
    """
    Extract the calendar date from an ISO 8601 date or datetime string.

    Provider timestamps look like "2024-03-05T14:22:10Z" or "2024-03-05";
    only the part before "T" is used, so no timezone conversion happens.
    Returns None for missing or blank input.
    """
    if not timestamp or not timestamp.strip():
        return None
    return date.fromisoformat(timestamp.strip().split("T")[0])
