"""Core data models for stations, readings and snapshots."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


DEFAULT_SENSORS: Tuple[str, ...] = ("top",)


class TimeWindow(Enum):
    """Rolling-median period a feed represents."""
    SHORT = "6d"
    LONG = "15d"

    @property
    def label(self) -> str:
        return "6-day median" if self is TimeWindow.SHORT else "15-day median"

    @classmethod
    def from_key(cls, key: str) -> "TimeWindow":
        """Parse a window from config keys like '6d', 'short', '15d' or 'long'."""
        normalized = str(key).strip().lower()
        aliases = {
            "6d": cls.SHORT,
            "short": cls.SHORT,
            "15d": cls.LONG,
            "long": cls.LONG,
        }
        if normalized not in aliases:
            raise ValueError(f"Unknown time window: {key!r}")
        return aliases[normalized]


class ClassificationLevel(Enum):
    """Severity of a reading against its site thresholds.

    NEUTRAL means the site carries no thresholds and never takes part
    in worst-case aggregation.
    """
    GREEN = "green"
    AMBER = "amber"
    RED = "red"
    NEUTRAL = "neutral"

    @property
    def rank(self) -> Optional[int]:
        return _LEVEL_RANK.get(self)


_LEVEL_RANK = {
    ClassificationLevel.GREEN: 1,
    ClassificationLevel.AMBER: 2,
    ClassificationLevel.RED: 3,
}


def worst_level(levels: Iterable[ClassificationLevel]) -> Optional[ClassificationLevel]:
    """Return the most severe non-neutral level, or None if there is none."""
    worst = None
    for level in levels:
        if level.rank is None:
            continue
        if worst is None or level.rank > worst.rank:
            worst = level
    return worst


def parse_timestamp(timestamp: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Returns None for empty or malformed input. Naive timestamps are
    taken to be UTC.
    """
    if not timestamp:
        return None
    text = timestamp.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ErrorKind(Enum):
    """Why a sensor has no usable reading."""
    CONFIGURATION_MISSING = "configuration_missing"
    NETWORK_FAILURE = "network_failure"
    HTTP_FAILURE = "http_failure"
    NO_DATA = "no_data"


@dataclass(frozen=True)
class SensorError:
    kind: ErrorKind
    reason: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class Station:
    """A monitoring station, normalized from the stations file.

    feeds maps a sensor position to its raw {feed key: url} table.
    """
    id: str
    name: str
    coords: Optional[Tuple[float, float]] = None
    sensors: Tuple[str, ...] = DEFAULT_SENSORS
    feeds: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "id", self.id.lower())
        object.__setattr__(self, "sensors", tuple(self.sensors) or DEFAULT_SENSORS)
        object.__setattr__(self, "feeds", MappingProxyType({
            position: MappingProxyType(dict(keys))
            for position, keys in self.feeds.items()
        }))

    def feed_keys(self, position: str) -> Mapping[str, str]:
        """Get the feed key table for a sensor position (empty if none)."""
        return self.feeds.get(position, MappingProxyType({}))


@dataclass(frozen=True)
class Reading:
    """Latest sample from a feed; timestamp is kept as received."""
    timestamp: str
    value: float

    @property
    def observed_at(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True)
class SensorStatus:
    """Outcome for one (station, window, sensor position) in a refresh.

    Exactly one of reading or error is set.
    """
    station_id: str
    position: str
    window: TimeWindow
    reading: Optional[Reading] = None
    level: Optional[ClassificationLevel] = None
    stale: bool = False
    error: Optional[SensorError] = None
    url: Optional[str] = None

    def __post_init__(self):
        if (self.reading is None) == (self.error is None):
            raise ValueError("SensorStatus needs exactly one of reading or error")
        if self.reading is not None and self.level is None:
            raise ValueError("An ok SensorStatus needs a classification level")

    @classmethod
    def ok(
        cls,
        station_id: str,
        position: str,
        window: TimeWindow,
        reading: Reading,
        level: ClassificationLevel,
        stale: bool,
        url: Optional[str] = None,
    ) -> "SensorStatus":
        return cls(
            station_id=station_id,
            position=position,
            window=window,
            reading=reading,
            level=level,
            stale=stale,
            url=url,
        )

    @classmethod
    def failed(
        cls,
        station_id: str,
        position: str,
        window: TimeWindow,
        kind: ErrorKind,
        reason: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> "SensorStatus":
        return cls(
            station_id=station_id,
            position=position,
            window=window,
            error=SensorError(kind=kind, reason=reason, status_code=status_code),
            url=url,
        )

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        data: Dict[str, Any] = {
            "position": self.position,
            "window": self.window.value,
            "ok": self.is_ok,
            "url": self.url,
        }
        if self.reading is not None:
            data.update({
                "value": self.reading.value,
                "timestamp": self.reading.timestamp,
                "level": self.level.value,
                "stale": self.stale,
            })
        else:
            data.update({
                "error": self.error.kind.value,
                "reason": self.error.reason,
            })
        return data


@dataclass(frozen=True)
class StationSnapshot:
    """All sensor outcomes for one station in one refresh."""
    station_id: str
    name: str
    coords: Optional[Tuple[float, float]]
    windows: Mapping[TimeWindow, Mapping[str, SensorStatus]]

    def __post_init__(self):
        object.__setattr__(self, "windows", MappingProxyType({
            window: MappingProxyType(dict(statuses))
            for window, statuses in self.windows.items()
        }))

    def statuses(self) -> List[SensorStatus]:
        return [status for statuses in self.windows.values() for status in statuses.values()]

    def sensor(self, window: TimeWindow, position: str) -> Optional[SensorStatus]:
        return self.windows.get(window, {}).get(position)

    @property
    def overall_severity(self) -> Optional[ClassificationLevel]:
        """Worst level among ok, fresh sensors; None means no classification."""
        return worst_level(
            status.level
            for status in self.statuses()
            if status.is_ok and not status.stale
        )

    @property
    def any_stale(self) -> bool:
        return any(status.is_ok and status.stale for status in self.statuses())

    @property
    def any_error(self) -> bool:
        return any(not status.is_ok for status in self.statuses())

    def to_dict(self) -> Dict[str, Any]:
        severity = self.overall_severity
        return {
            "id": self.station_id,
            "name": self.name,
            "coords": list(self.coords) if self.coords else None,
            "overall_severity": severity.value if severity else None,
            "windows": {
                window.value: {
                    position: status.to_dict() for position, status in statuses.items()
                }
                for window, statuses in self.windows.items()
            },
        }


@dataclass(frozen=True)
class Snapshot:
    """One complete, immutable result of polling every feed."""
    refreshed_at: datetime
    stations: Mapping[str, StationSnapshot]
    generation: int = 0

    def __post_init__(self):
        object.__setattr__(self, "stations", MappingProxyType(dict(self.stations)))

    def get(self, station_id: str) -> Optional[StationSnapshot]:
        return self.stations.get(station_id.lower())

    def statuses(self) -> List[SensorStatus]:
        return [status for station in self.stations.values() for status in station.statuses()]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "refreshed_at": self.refreshed_at.isoformat(),
            "generation": self.generation,
            "stations": [station.to_dict() for station in self.stations.values()],
        }
