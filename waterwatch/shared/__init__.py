"""Shared utilities for waterwatch services."""

from .models import (
    ClassificationLevel,
    ErrorKind,
    Reading,
    SensorError,
    SensorStatus,
    Snapshot,
    Station,
    StationSnapshot,
    TimeWindow,
)
from .config import load_yaml_config, get_config_path
from .exceptions import ConfigurationError, FeedError, WaterwatchError
from .logging import setup_logging

__all__ = [
    "ClassificationLevel",
    "ErrorKind",
    "Reading",
    "SensorError",
    "SensorStatus",
    "Snapshot",
    "Station",
    "StationSnapshot",
    "TimeWindow",
    "load_yaml_config",
    "get_config_path",
    "ConfigurationError",
    "FeedError",
    "WaterwatchError",
    "setup_logging",
]
