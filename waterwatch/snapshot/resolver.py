"""Resolve the feed address for a station sensor, parameter and window.

Station files have used several spellings for the same logical feed over
time. Each window has one ordered list of key suffixes; the first key that
exists wins. The bare parameter key predates windowed feeds and always
meant the 15-day median, so it is only tried for the long window.
"""

from typing import List, Optional

from waterwatch.shared.models import Station, TimeWindow

WINDOW_KEY_SUFFIXES = {
    TimeWindow.SHORT: ["_6d", "6d", "_6day", "-6d", "_6_day", "_short"],
    TimeWindow.LONG: ["_15d", "15d", "_15day", "-15d", "_15_day", "_long"],
}

LEGACY_WINDOW = TimeWindow.LONG


def feed_key_candidates(parameter: str, window: TimeWindow) -> List[str]:
    """Ordered feed keys to try, most specific first."""
    candidates = [f"{parameter}{suffix}" for suffix in WINDOW_KEY_SUFFIXES[window]]
    if window is LEGACY_WINDOW:
        candidates.append(parameter)
    return [candidate.lower() for candidate in candidates]


def resolve_feed_url(
    station: Station,
    position: str,
    parameter: str,
    window: TimeWindow,
) -> Optional[str]:
    """Return the configured feed url, or None if the feed is not configured."""
    keys = {str(key).lower(): url for key, url in station.feed_keys(position).items()}
    for candidate in feed_key_candidates(parameter, window):
        url = keys.get(candidate)
        if isinstance(url, str) and url.strip():
            return url.strip()
    return None
