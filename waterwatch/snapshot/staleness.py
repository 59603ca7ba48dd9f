"""Staleness checks for feed readings."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from waterwatch.shared.models import parse_timestamp

DEFAULT_MAX_AGE = timedelta(hours=24)


def is_stale(
    timestamp: Optional[str],
    now: Optional[datetime] = None,
    max_age: timedelta = DEFAULT_MAX_AGE,
) -> bool:
    """Check whether a reading is too old to trust.

    A reading exactly max_age old is still fresh. Timestamps that cannot be
    parsed are treated as stale.

    Args:
        timestamp: Raw timestamp string from the feed.
        now: Evaluation instant; defaults to the current UTC time.
        max_age: Freshness window.

    Returns:
        True if the reading is stale.
    """
    observed = parse_timestamp(timestamp)
    if observed is None:
        return True

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    return (now - observed) > max_age
