"""Turbidity snapshot engine."""

from .builder import FetchStrategy, SnapshotBuilder, build_snapshot
from .fetcher import FeedClient
from .parser import parse_latest_reading
from .resolver import resolve_feed_url
from .service import SnapshotService
from .staleness import is_stale
from .stations import load_stations
from .thresholds import ThresholdTable, classify


def main():
    """Entry point: build one snapshot and print it as JSON."""
    import argparse
    import asyncio
    import json
    import logging
    import sys

    import yaml

    from .config import load_config
    from waterwatch.shared.exceptions import ConfigurationError
    from waterwatch.shared.logging import setup_logging

    parser = argparse.ArgumentParser(description="Build one turbidity snapshot")
    parser.add_argument("--config", help="Path to YAML config file")
    parser.add_argument("--stations", help="Path to stations file (overrides config)")
    parser.add_argument("--strategy", choices=[s.value for s in FetchStrategy])
    args = parser.parse_args()

    logger = logging.getLogger("waterwatch.snapshot")
    try:
        config = load_config(args.config)
        if args.stations:
            config.stations_path = args.stations
        if args.strategy:
            config.fetch_strategy = args.strategy
        config.validate()
        setup_logging(config.log_level)
        stations = load_stations(config.stations_path)
        service = SnapshotService(config, stations)
    except (ConfigurationError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        setup_logging("INFO")
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    snapshot = asyncio.run(service.refresh())
    print(json.dumps(snapshot.to_dict(), indent=2))


__all__ = [
    "FeedClient",
    "FetchStrategy",
    "SnapshotBuilder",
    "SnapshotService",
    "ThresholdTable",
    "build_snapshot",
    "classify",
    "is_stale",
    "load_stations",
    "parse_latest_reading",
    "resolve_feed_url",
    "main",
]
