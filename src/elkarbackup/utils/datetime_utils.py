"""
Datetime helpers. All timestamps stored by the service are naive UTC.
"""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current UTC time without tzinfo, as stored in SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
