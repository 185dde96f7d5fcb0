"""
Date helpers for the CLI boundary.

The planning engine never reads the clock.  The CLI resolves the reference
date and plan timestamp here and passes them in explicitly.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def parse_reference_date(value: Optional[str], now: Optional[datetime] = None) -> date:
    """Resolve a ``--reference-date`` option.

    Args:
        value: ISO date string (``YYYY-MM-DD``) or ``None`` for "today".
        now:   Clock reading used when ``value`` is ``None``; defaults to
            ``utcnow()``.

    Returns:
        The reference date.

    Raises:
        ValueError: If ``value`` is not an ISO date.
    """
    if value is None:
        return (now or utcnow()).date()
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(
            f"Cannot parse reference date '{value}'. Expected format: YYYY-MM-DD."
        ) from None
