"""Snapshot service - owns the current snapshot and its refresh timer."""

import asyncio
import logging
from typing import Callable, Iterable, Optional, Set

from waterwatch.shared.models import Snapshot, Station
from .builder import SnapshotBuilder
from .config import SnapshotConfig
from .fetcher import FeedClient
from .thresholds import ThresholdTable

logger = logging.getLogger(__name__)


class SnapshotService:
    """Builds snapshots on a fixed interval and serves the latest one.

    Lifecycle: construct with config, stations and thresholds, start() to
    begin periodic refresh, stop() to cancel it. Every refresh takes the
    next generation number. The published snapshot is only ever replaced
    as a whole, so readers never see a partly updated view.
    """

    def __init__(
        self,
        config: SnapshotConfig,
        stations: Iterable[Station],
        thresholds: Optional[ThresholdTable] = None,
        client_factory: Optional[Callable[[], FeedClient]] = None,
    ):
        """Initialize the service.

        Args:
            config: Snapshot configuration.
            stations: Normalized stations to poll.
            thresholds: Threshold table; defaults to the one in config.
            client_factory: Returns a fresh async-context feed client for
                each refresh. Defaults to FeedClient built from config.
        """
        self.config = config
        self.stations = tuple(stations)
        self.thresholds = thresholds if thresholds is not None else config.threshold_table()
        self._client_factory = client_factory or self._default_client
        self._snapshot: Optional[Snapshot] = None
        self._generation = 0
        self._adopted_generation = 0
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self.running = False

    def _default_client(self) -> FeedClient:
        return FeedClient(
            timeout=self.config.request_timeout,
            url_pattern=self.config.feed_url_pattern,
        )

    @property
    def generation(self) -> int:
        """Generation number of the most recently started refresh."""
        return self._generation

    def get_snapshot(self) -> Optional[Snapshot]:
        """Latest adopted snapshot, or None before the first build completes."""
        return self._snapshot

    def _adopt(self, snapshot: Snapshot) -> bool:
        if self.config.discard_superseded and snapshot.generation < self._adopted_generation:
            logger.info(
                f"Discarding superseded snapshot #{snapshot.generation} "
                f"(already published #{self._adopted_generation})"
            )
            return False
        self._snapshot = snapshot
        self._adopted_generation = max(self._adopted_generation, snapshot.generation)
        return True

    async def refresh(self) -> Snapshot:
        """Run one complete build and publish it.

        Returns the snapshot built by this call, even if a newer refresh
        finished first and it was therefore not published.
        """
        self._generation += 1
        generation = self._generation

        async with self._client_factory() as client:
            builder = SnapshotBuilder(
                client,
                self.thresholds,
                parameter=self.config.parameter,
                strategy=self.config.strategy,
                max_age=self.config.max_age,
            )
            snapshot = await builder.build(self.stations, generation=generation)

        self._adopt(snapshot)
        return snapshot

    async def _refresh_logged(self) -> None:
        try:
            await self.refresh()
        except Exception as e:
            logger.error(f"Snapshot refresh failed: {e}")

    def _launch_refresh(self) -> asyncio.Task:
        # Builds still running keep going; _adopt orders their results
        task = asyncio.create_task(self._refresh_logged())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def run_loop(self) -> None:
        """Start a refresh every refresh_interval seconds until stopped."""
        logger.info(
            f"Starting snapshot service ({len(self.stations)} stations, "
            f"interval={self.config.refresh_interval}s, strategy={self.config.strategy.value})"
        )
        while self.running:
            self._launch_refresh()
            await asyncio.sleep(self.config.refresh_interval)

    def start(self) -> asyncio.Task:
        """Begin periodic refresh on the running event loop."""
        if self._task is not None and not self._task.done():
            return self._task
        self.running = True
        self._task = asyncio.create_task(self.run_loop())
        return self._task

    async def stop(self) -> None:
        """Cancel the refresh timer and any build still in flight."""
        self.running = False
        tasks = list(self._inflight)
        if self._task is not None:
            tasks.append(self._task)
            self._task = None

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Snapshot service stopped")

    async def _run_forever(self) -> None:
        self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    def run(self) -> None:
        """Run the service until interrupted (blocking)."""
        try:
            asyncio.run(self._run_forever())
        except KeyboardInterrupt:
            logger.info("Shutting down snapshot service...")
