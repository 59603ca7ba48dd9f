"""
Terminal Monitor for the turbidity dashboard
Full-screen terminal interface using Rich library.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from waterwatch.shared.models import Snapshot, TimeWindow
from waterwatch.snapshot.service import SnapshotService
from .tiles import (
    LEGEND,
    MARKER_UNKNOWN,
    STYLES,
    marker_status,
    popup_lines,
    tile_class,
    tile_text,
)

logger = logging.getLogger(__name__)


class TerminalMonitor:
    """Terminal-based dashboard using Rich"""

    def __init__(self, service: SnapshotService, console: Optional[Console] = None, interval: float = 10.0):
        self.service = service
        self.console = console or Console()
        self.interval = interval

    def update_display(self):
        """Redraw the display from the latest snapshot"""
        try:
            snapshot = self.service.get_snapshot()
            self.console.clear()
            if snapshot is None:
                self.console.print(Panel(Align.center(Text("Loading turbidity…", style="cyan"))))
                return
            self.console.print(self.create_layout(snapshot))
        except Exception as e:
            logger.error(f"Display update failed: {e}")
            self._show_error_display(str(e))

    def create_layout(self, snapshot: Snapshot) -> Layout:
        """Create the main display layout"""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
        )
        layout["body"].split_row(
            Layout(name="tiles", ratio=3),
            Layout(name="stations", ratio=2),
        )

        layout["header"].update(self._create_header(snapshot))
        layout["tiles"].update(Group(
            self._create_tiles_panel(snapshot, TimeWindow.SHORT),
            self._create_tiles_panel(snapshot, TimeWindow.LONG),
        ))
        layout["stations"].update(Group(
            self._create_station_panel(snapshot),
            self._create_legend_panel(),
        ))
        return layout

    def _create_header(self, snapshot: Snapshot) -> Panel:
        refreshed = snapshot.refreshed_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")

        header_text = Text()
        header_text.append("TURBIDITY MONITOR", style="bold cyan")
        header_text.append(f" - refreshed {refreshed}", style="white")
        header_text.append(f" - #{snapshot.generation}", style="grey50")

        return Panel(Align.center(header_text), style="cyan")

    def _create_tiles_panel(self, snapshot: Snapshot, window: TimeWindow) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Station", style="white", width=22)
        table.add_column("Sensor", style="white", width=8)
        table.add_column("Turbidity", style="white")

        rows = 0
        for station in snapshot.stations.values():
            for position, status in station.windows.get(window, {}).items():
                table.add_row(
                    station.name,
                    position.upper(),
                    tile_text(status),
                    style=STYLES[tile_class(status)],
                )
                rows += 1

        if not rows:
            return Panel(Text("No turbidity links configured.", style="grey50"),
                         title=window.label.upper(), style="cyan")
        return Panel(table, title=window.label.upper(), style="cyan")

    def _create_station_panel(self, snapshot: Snapshot) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Station", style="white", width=22)
        table.add_column("Status", style="white", width=10)
        table.add_column("15-day median", style="white")

        for station in snapshot.stations.values():
            status = marker_status(station, TimeWindow.LONG)
            lines = popup_lines(station, TimeWindow.LONG)
            table.add_row(
                station.name,
                Text(status.upper(), style=STYLES.get(status, STYLES[MARKER_UNKNOWN])),
                "\n".join(lines) if lines else "No data",
            )

        return Panel(table, title="STATIONS", style="cyan")

    def _create_legend_panel(self) -> Panel:
        legend = Text()
        for i, (status, label) in enumerate(LEGEND.items()):
            if i > 0:
                legend.append("  ")
            legend.append(" ■ ", style=STYLES[status])
            legend.append(label, style="white")
        return Panel(legend, title="TURBIDITY STATUS", style="cyan")

    def _show_error_display(self, error_msg: str):
        """Show error display when rendering fails"""
        try:
            self.console.clear()
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.console.print(Panel(
                Align.center(Text(f"DISPLAY ERROR - {timestamp}\n\n{error_msg}", style="bold red")),
                title="System Error",
                style="red",
            ))
        except Exception as e:
            logger.error(f"Failed to show error display: {e}")

    async def run(self):
        """Start the snapshot service and redraw until cancelled"""
        self.service.start()
        try:
            while True:
                self.update_display()
                await asyncio.sleep(self.interval)
        finally:
            await self.service.stop()
