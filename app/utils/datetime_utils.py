"""
Helpers for datetimes read back from the database.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any


def dt_replace_utc(dt: datetime | None | Any) -> datetime | None:
    """
    Return dt with tzinfo=UTC if naive, or None if dt is None.
    SQLite hands back naive datetimes even for DateTime(timezone=True) columns.
    """
    if dt is None:
        return None
    if isinstance(dt, datetime):
        return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt
    return None
