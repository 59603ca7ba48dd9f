"""Terminal display service."""

from .terminal_monitor import TerminalMonitor
from .tiles import marker_status, popup_lines, tile_class


def main():
    """Entry point for display service."""
    import asyncio
    import sys

    import yaml
    from rich.console import Console

    from waterwatch.shared.exceptions import ConfigurationError
    from waterwatch.shared.logging import get_logger, setup_logging
    from waterwatch.snapshot.config import load_config
    from waterwatch.snapshot.service import SnapshotService
    from waterwatch.snapshot.stations import load_stations

    logger = get_logger("waterwatch.display")
    try:
        config = load_config()
        setup_logging(config.log_level)
        stations = load_stations(config.stations_path)
        service = SnapshotService(config, stations)
    except (ConfigurationError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        setup_logging("INFO")
        logger.error(f"Failed to load configuration: {e}")
        Console(stderr=True).print("[bold red]Failed to load configuration. Check stations file.[/]")
        sys.exit(1)

    monitor = TerminalMonitor(service)

    try:
        asyncio.run(monitor.run())
    except KeyboardInterrupt:
        pass


__all__ = ["TerminalMonitor", "marker_status", "popup_lines", "tile_class", "main"]
