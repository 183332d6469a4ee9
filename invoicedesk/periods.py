"""
Named reporting windows for the invoice listing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

DEFAULT_PERIOD = "daily"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def period_start(period: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Lower bound (inclusive) for a named period.

    daily is local midnight today, weekly and monthly are rolling 7 and 30
    day windows. A missing period means daily; any unrecognized name means
    no lower bound at all.
    """
    now = now or datetime.now().astimezone()
    name = (period or DEFAULT_PERIOD).strip().lower()
    if name == "daily":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if name == "weekly":
        return now - timedelta(days=7)
    if name == "monthly":
        return now - timedelta(days=30)
    return EPOCH
