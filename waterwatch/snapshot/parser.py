"""Feed parser: raw CSV-ish feed text to the latest reading."""

import logging
import math
import re
from typing import Optional

from waterwatch.shared.models import Reading

logger = logging.getLogger(__name__)

DATA_LINE = re.compile(r"^\d{4}-\d{2}-\d{2}T")


def parse_latest_reading(text: Optional[str]) -> Optional[Reading]:
    """Return the last data line of a feed body as a Reading.

    Data lines start with an ISO-8601 date; headers and blank lines are
    skipped. Feeds are chronological, so the last data line is the most
    recent sample. Returns None when there is no usable line.
    """
    if not text:
        return None

    lines = [line.strip() for line in text.splitlines()]
    data_lines = [line for line in lines if line and DATA_LINE.match(line)]
    if not data_lines:
        return None

    parts = data_lines[-1].split(",")
    if len(parts) < 2:
        return None

    timestamp = parts[0].strip()
    try:
        value = float(parts[1].strip())
    except ValueError:
        logger.debug(f"Non-numeric value in feed line: {data_lines[-1]!r}")
        return None
    if not math.isfinite(value):
        return None

    return Reading(timestamp=timestamp, value=value)
