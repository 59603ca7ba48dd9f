"""Configuration for the turbidity snapshot service."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

from waterwatch.shared.config import get_config_dir, get_config_path, load_yaml_config
from waterwatch.shared.exceptions import ConfigurationError
from .builder import FetchStrategy
from .fetcher import DEFAULT_FEED_URL_PATTERN
from .thresholds import DEFAULT_THRESHOLDS, ThresholdTable


@dataclass
class SnapshotConfig:
    """Configuration for snapshot building and periodic refresh."""

    stations_path: str = str(get_config_dir() / "stations.json")
    parameter: str = "turbidity"

    # Refresh settings
    refresh_interval: float = 300.0  # seconds
    request_timeout: float = 20.0  # seconds
    fetch_strategy: str = FetchStrategy.SEQUENTIAL.value
    discard_superseded: bool = True

    # Classification
    stale_after_hours: float = 24.0
    feed_url_pattern: str = DEFAULT_FEED_URL_PATTERN
    thresholds: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_THRESHOLDS))

    # Logging
    log_level: str = "INFO"

    @property
    def strategy(self) -> FetchStrategy:
        return FetchStrategy(self.fetch_strategy.lower())

    @property
    def max_age(self) -> timedelta:
        return timedelta(hours=self.stale_after_hours)

    def threshold_table(self) -> ThresholdTable:
        return ThresholdTable.from_dict(self.thresholds)

    def validate(self) -> None:
        """Check the fetch strategy and thresholds.

        Raises:
            ConfigurationError: Either one cannot be used.
        """
        if str(self.fetch_strategy).lower() not in {s.value for s in FetchStrategy}:
            raise ConfigurationError(f"Unknown fetch_strategy: {self.fetch_strategy!r}")
        try:
            self.threshold_table()
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid thresholds: {e}") from e

    @classmethod
    def from_dict(cls, data: dict, base_dir: Optional[Path] = None) -> "SnapshotConfig":
        """Create config from dictionary.

        Relative stations paths are resolved against base_dir when given.
        """
        defaults = cls()
        stations_path = data.get("stations_path", defaults.stations_path)
        if base_dir is not None and not Path(stations_path).is_absolute():
            stations_path = str(base_dir / stations_path)

        config = cls(
            stations_path=stations_path,
            parameter=data.get("parameter", "turbidity"),
            refresh_interval=float(data.get("refresh_interval", 300.0)),
            request_timeout=float(data.get("request_timeout", 20.0)),
            fetch_strategy=data.get("fetch_strategy", FetchStrategy.SEQUENTIAL.value),
            discard_superseded=data.get("discard_superseded", True),
            stale_after_hours=float(data.get("stale_after_hours", 24.0)),
            feed_url_pattern=data.get("feed_url_pattern", DEFAULT_FEED_URL_PATTERN),
            thresholds=data.get("thresholds", dict(DEFAULT_THRESHOLDS)),
            log_level=data.get("log_level", "INFO"),
        )
        config.validate()
        return config


def load_config(config_path: Optional[str] = None) -> SnapshotConfig:
    """Load configuration from YAML file or environment.

    Args:
        config_path: Path to YAML config file. If not provided,
                    looks for WATERWATCH_CONFIG env var, then
                    config/config-{env}.yaml, then falls back to defaults.

    Returns:
        SnapshotConfig instance.
    """
    if config_path is None:
        config_path = os.environ.get("WATERWATCH_CONFIG")
    if config_path is None and get_config_path().exists():
        config_path = str(get_config_path())

    if config_path:
        path = Path(config_path)
        config = SnapshotConfig.from_dict(load_yaml_config(path), base_dir=path.parent)
    else:
        config = SnapshotConfig()

    # Environment variable overrides
    if stations_path := os.environ.get("WATERWATCH_STATIONS"):
        config.stations_path = stations_path
    if strategy := os.environ.get("WATERWATCH_FETCH_STRATEGY"):
        config.fetch_strategy = strategy
    if log_level := os.environ.get("LOG_LEVEL"):
        config.log_level = log_level

    config.validate()
    return config
