"""Site- and window-specific turbidity thresholds."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from waterwatch.shared.models import ClassificationLevel, TimeWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowThreshold:
    """Amber/red cut-offs for one site and window, as configured."""
    amber: Any
    red: Any

    def effective(self) -> Optional[Tuple[float, float]]:
        """Return (amber, red) ordered so amber <= red, or None if unusable."""
        try:
            amber = float(self.amber)
            red = float(self.red)
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(amber) and math.isfinite(red)):
            return None
        return min(amber, red), max(amber, red)


# Only these regulated sites carry enforceable triggers.
DEFAULT_THRESHOLDS: Dict[str, Dict[str, Dict[str, float]]] = {
    "seagrass": {
        "6d": {"amber": 4.0, "red": 4.33},
        "15d": {"amber": 3.0, "red": 3.3},
    },
    "scallops": {
        "6d": {"amber": 4.0, "red": 4.33},
        "15d": {"amber": 3.0, "red": 3.3},
    },
    "grayling": {
        "6d": {"amber": 4.0, "red": 4.33},
        "15d": {"amber": 3.0, "red": 3.3},
    },
}


class ThresholdTable:
    """Lookup of thresholds by station id (case-insensitive) and window."""

    def __init__(self, entries: Optional[Mapping[str, Mapping[TimeWindow, WindowThreshold]]] = None):
        self._entries: Dict[str, Dict[TimeWindow, WindowThreshold]] = {
            station_id.lower(): dict(windows)
            for station_id, windows in (entries or {}).items()
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ThresholdTable":
        """Build a table from config data.

        Expected shape::

            seagrass:
              6d: {amber: 4.0, red: 4.33}
              15d: {amber: 3.0, red: 3.3}

        Window keys may also be 'short' / 'long'.
        """
        entries: Dict[str, Dict[TimeWindow, WindowThreshold]] = {}
        for station_id, windows in (data or {}).items():
            if not isinstance(windows, Mapping):
                raise ValueError(f"thresholds['{station_id}'] must be a mapping of windows")
            parsed = {}
            for window_key, pair in windows.items():
                window = TimeWindow.from_key(window_key)
                if not isinstance(pair, Mapping):
                    raise ValueError(
                        f"thresholds['{station_id}']['{window_key}'] must have 'amber' and 'red'"
                    )
                parsed[window] = WindowThreshold(amber=pair.get("amber"), red=pair.get("red"))
            entries[str(station_id)] = parsed
        return cls(entries)

    @classmethod
    def default(cls) -> "ThresholdTable":
        return cls.from_dict(DEFAULT_THRESHOLDS)

    def __contains__(self, station_id: str) -> bool:
        return station_id.lower() in self._entries

    def get(self, station_id: str, window: TimeWindow) -> Optional[WindowThreshold]:
        return self._entries.get(station_id.lower(), {}).get(window)

    def classify(self, station_id: str, window: TimeWindow, value: float) -> ClassificationLevel:
        """Classify a value for a station using that window's cut-offs.

        Stations or windows without usable thresholds are NEUTRAL.
        """
        threshold = self.get(station_id, window)
        if threshold is None:
            return ClassificationLevel.NEUTRAL

        cutoffs = threshold.effective()
        if cutoffs is None:
            logger.debug(f"Unusable thresholds for {station_id}/{window.value}: {threshold}")
            return ClassificationLevel.NEUTRAL
        if value is None or not math.isfinite(value):
            return ClassificationLevel.NEUTRAL

        amber, red = cutoffs
        if value >= red:
            return ClassificationLevel.RED
        if value >= amber:
            return ClassificationLevel.AMBER
        return ClassificationLevel.GREEN


def classify(
    station_id: str,
    window: TimeWindow,
    value: float,
    table: Optional[ThresholdTable] = None,
) -> ClassificationLevel:
    """Classify against the given table, or the built-in default table."""
    return (table or ThresholdTable.default()).classify(station_id, window, value)
