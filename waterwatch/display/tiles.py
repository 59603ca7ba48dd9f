"""
Status derivation for tiles, map markers and popups.
Pure functions over a Snapshot; no I/O.
"""

from typing import Dict, List, Optional

from waterwatch.shared.models import (
    ClassificationLevel,
    SensorStatus,
    StationSnapshot,
    TimeWindow,
)

GRAY = "gray"

# Map marker states, most to least informative
MARKER_RED = "red"
MARKER_AMBER = "amber"
MARKER_GREEN = "green"
MARKER_STALE = "stale"
MARKER_ERROR = "error"
MARKER_UNKNOWN = "unknown"

LEGEND: Dict[str, str] = {
    MARKER_GREEN: "Compliant",
    MARKER_AMBER: "Alert",
    MARKER_RED: "Exceedance",
    MARKER_STALE: "Stale (>24h)",
    MARKER_ERROR: "Error / missing",
}

# rich styles per tile / marker state
STYLES: Dict[str, str] = {
    MARKER_RED: "bold white on red",
    MARKER_AMBER: "bold black on dark_orange",
    MARKER_GREEN: "bold black on green",
    MARKER_STALE: "grey70",
    MARKER_ERROR: "grey50",
    MARKER_UNKNOWN: "grey50",
    GRAY: "grey70",
}


def format_fnu(value: float) -> str:
    return f"{value:.2f} FNU"


def format_timestamp(status: SensorStatus) -> str:
    """Local display time for a reading, or the raw timestamp if unparseable."""
    if status.reading is None:
        return "—"
    observed = status.reading.observed_at
    if observed is None:
        return status.reading.timestamp or "—"
    return observed.astimezone().strftime("%Y-%m-%d %H:%M")


def tile_class(status: SensorStatus) -> str:
    """Tile colour: the level name for fresh classified readings, else gray."""
    if not status.is_ok or status.stale:
        return GRAY
    if status.level is ClassificationLevel.NEUTRAL:
        return GRAY
    return status.level.value


def tile_text(status: SensorStatus) -> str:
    if not status.is_ok:
        return f"— ({status.error.reason})"
    suffix = " (stale)" if status.stale else ""
    return f"{format_fnu(status.reading.value)} @ {format_timestamp(status)}{suffix}"


def marker_status(station: StationSnapshot, window: Optional[TimeWindow] = None) -> str:
    """Map marker state for a station.

    Stale readings take precedence over the worst level; a station whose
    sensors all errored is 'error'. Restricting to one window matches the
    map popup, which only describes the 15-day median.

    This is not StationSnapshot.overall_severity. That is a classification
    level across both windows for snapshot consumers and the JSON output, and
    it has no stale or error value. The marker follows the map legend, where
    stale and missing data each get their own colour.
    """
    if window is not None:
        statuses = list(station.windows.get(window, {}).values())
    else:
        statuses = station.statuses()
    if not statuses:
        return MARKER_UNKNOWN

    worst = MARKER_UNKNOWN
    rank = {MARKER_UNKNOWN: 0, MARKER_GREEN: 1, MARKER_AMBER: 2, MARKER_RED: 3}
    any_error = False
    any_stale = False
    for status in statuses:
        if not status.is_ok:
            any_error = True
            continue
        if status.stale:
            any_stale = True
        if status.level is not ClassificationLevel.NEUTRAL and rank[status.level.value] > rank[worst]:
            worst = status.level.value

    if any_error and worst == MARKER_UNKNOWN and not any_stale:
        return MARKER_ERROR
    if any_stale:
        return MARKER_STALE
    return worst


def popup_lines(station: StationSnapshot, window: TimeWindow = TimeWindow.LONG) -> List[str]:
    """One line per sensor position, e.g. 'TOP: 3.60 FNU (2025-01-02 00:00)'."""
    lines = []
    for position, status in station.windows.get(window, {}).items():
        label = position.upper()
        if not status.is_ok:
            lines.append(f"{label}: — (error)")
            continue
        stale = ", stale" if status.stale else ""
        lines.append(f"{label}: {format_fnu(status.reading.value)} ({format_timestamp(status)}{stale})")
    return lines
