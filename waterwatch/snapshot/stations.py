"""Load the station directory and normalize it into Station records."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from waterwatch.shared.exceptions import ConfigurationError
from waterwatch.shared.models import DEFAULT_SENSORS, Station

logger = logging.getLogger(__name__)

# Older station files call the per-sensor feed map "data".
FEED_MAP_FIELDS = ("values", "data")


def _parse_coords(station_id: str, raw: Any) -> Optional[Tuple[float, float]]:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        logger.warning(f"Station '{station_id}' has invalid coords {raw!r}, ignoring")
        return None
    try:
        return float(raw[0]), float(raw[1])
    except (TypeError, ValueError):
        logger.warning(f"Station '{station_id}' has non-numeric coords {raw!r}, ignoring")
        return None


def _parse_feeds(station_id: str, raw: Dict[str, Any]) -> Dict[str, Dict[str, str]]:
    for field_name in FEED_MAP_FIELDS:
        feeds = raw.get(field_name)
        if feeds is not None:
            break
    else:
        return {}

    if not isinstance(feeds, dict):
        raise ConfigurationError(f"Station '{station_id}': feed map must be a mapping")

    parsed = {}
    for position, keys in feeds.items():
        if not isinstance(keys, dict):
            raise ConfigurationError(
                f"Station '{station_id}': feeds for sensor '{position}' must be a mapping"
            )
        parsed[str(position)] = {
            str(key): str(url) for key, url in keys.items() if url is not None
        }
    return parsed


def station_from_dict(raw: Dict[str, Any]) -> Station:
    """Normalize one raw station entry into a Station.

    Raises:
        ConfigurationError: If the entry has no id or a malformed feed map.
    """
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Station entry must be a mapping, got {type(raw).__name__}")

    station_id = raw.get("id")
    if not station_id or not isinstance(station_id, str):
        raise ConfigurationError(f"Station entry without a valid 'id': {raw!r}")
    station_id = station_id.strip().lower()

    sensors = raw.get("sensors")
    if isinstance(sensors, list) and sensors:
        sensors = tuple(str(sensor) for sensor in sensors)
    else:
        sensors = DEFAULT_SENSORS

    return Station(
        id=station_id,
        name=str(raw.get("name") or station_id),
        coords=_parse_coords(station_id, raw.get("coords")),
        sensors=sensors,
        feeds=_parse_feeds(station_id, raw),
    )


def parse_stations(data: Any) -> List[Station]:
    """Normalize a loaded stations document ({'stations': [...]} or a bare list)."""
    if isinstance(data, dict):
        data = data.get("stations", [])
    if data is None:
        data = []
    if not isinstance(data, list):
        raise ConfigurationError("Stations document must be a list or have a 'stations' list")

    stations = []
    seen = set()
    for raw in data:
        station = station_from_dict(raw)
        if station.id in seen:
            raise ConfigurationError(f"Duplicate station id: '{station.id}'")
        seen.add(station.id)
        stations.append(station)
    return stations


def load_stations(path: Union[str, Path]) -> List[Station]:
    """Load stations from a JSON or YAML file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed.
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Stations file not found: {path}") from e
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read stations file {path}: {e}") from e

    stations = parse_stations(data)
    logger.info(f"Loaded {len(stations)} stations from {path}")
    return stations
