"""Snapshot builder: fetch, parse, classify and aggregate every feed."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from waterwatch.shared.exceptions import FeedError, FeedHttpError, FeedRejectedError
from waterwatch.shared.models import (
    ErrorKind,
    SensorStatus,
    Snapshot,
    Station,
    StationSnapshot,
    TimeWindow,
)
from .parser import parse_latest_reading
from .resolver import resolve_feed_url
from .staleness import DEFAULT_MAX_AGE, is_stale
from .thresholds import ThresholdTable

logger = logging.getLogger(__name__)

DEFAULT_WINDOWS: Tuple[TimeWindow, ...] = (TimeWindow.SHORT, TimeWindow.LONG)

WindowStatuses = Dict[str, Dict[str, SensorStatus]]


class FetchStrategy(Enum):
    """How feeds are scheduled within one build.

    SEQUENTIAL awaits every feed in turn. CONCURRENT runs one task group per
    window (each gathering its own fetches) and joins both groups before the
    snapshot is assembled.
    """
    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"


class SnapshotBuilder:
    """Builds one complete Snapshot per call to build().

    Feed failures are recorded on the affected sensor and never abort the
    build. Nothing is retried; callers rebuild on their own schedule.
    """

    def __init__(
        self,
        client,
        thresholds: ThresholdTable,
        parameter: str = "turbidity",
        windows: Sequence[TimeWindow] = DEFAULT_WINDOWS,
        strategy: FetchStrategy = FetchStrategy.SEQUENTIAL,
        max_age: timedelta = DEFAULT_MAX_AGE,
    ):
        """
        Args:
            client: Object with an async fetch_text(url) method, normally a
                FeedClient that is already open.
            thresholds: Threshold table used for classification.
            parameter: Feed parameter to poll.
            windows: Windows to build, in output order.
            strategy: Fetch scheduling strategy.
            max_age: Readings older than this are stale.
        """
        self.client = client
        self.thresholds = thresholds
        self.parameter = parameter
        self.windows = tuple(windows)
        self.strategy = strategy
        self.max_age = max_age

    async def sensor_status(
        self,
        station: Station,
        position: str,
        window: TimeWindow,
        now: datetime,
    ) -> SensorStatus:
        """Resolve, fetch, parse and classify a single sensor feed."""
        url = resolve_feed_url(station, position, self.parameter, window)
        if url is None:
            return SensorStatus.failed(
                station.id, position, window, ErrorKind.CONFIGURATION_MISSING, "not configured"
            )

        try:
            text = await self.client.fetch_text(url)
        except FeedRejectedError:
            logger.warning(f"Rejected feed address for {station.id}/{position}/{window.value}: {url}")
            return SensorStatus.failed(
                station.id, position, window, ErrorKind.CONFIGURATION_MISSING, "address rejected", url=url
            )
        except FeedHttpError as e:
            logger.warning(f"Feed {station.id}/{position}/{window.value} returned HTTP {e.status}: {url}")
            return SensorStatus.failed(
                station.id, position, window, ErrorKind.HTTP_FAILURE, str(e),
                url=url, status_code=e.status,
            )
        except FeedError as e:
            logger.warning(f"Feed {station.id}/{position}/{window.value} failed: {e}")
            return SensorStatus.failed(
                station.id, position, window, ErrorKind.NETWORK_FAILURE, str(e), url=url
            )
        except Exception as e:
            logger.error(f"Unexpected error fetching {url}: {e}")
            return SensorStatus.failed(
                station.id, position, window, ErrorKind.NETWORK_FAILURE,
                str(e) or e.__class__.__name__, url=url,
            )

        reading = parse_latest_reading(text)
        if reading is None:
            logger.debug(f"No data lines in feed {url}")
            return SensorStatus.failed(
                station.id, position, window, ErrorKind.NO_DATA, "no data", url=url
            )

        return SensorStatus.ok(
            station.id,
            position,
            window,
            reading=reading,
            level=self.thresholds.classify(station.id, window, reading.value),
            stale=is_stale(reading.timestamp, now, self.max_age),
            url=url,
        )

    async def _build_window(
        self,
        stations: Sequence[Station],
        window: TimeWindow,
        now: datetime,
    ) -> WindowStatuses:
        jobs = [(station, position) for station in stations for position in station.sensors]

        if self.strategy is FetchStrategy.CONCURRENT:
            statuses: List[SensorStatus] = list(await asyncio.gather(*[
                self.sensor_status(station, position, window, now) for station, position in jobs
            ]))
        else:
            statuses = []
            for station, position in jobs:
                statuses.append(await self.sensor_status(station, position, window, now))

        result: WindowStatuses = {}
        for (station, position), status in zip(jobs, statuses):
            result.setdefault(station.id, {})[position] = status
        return result

    async def build(
        self,
        stations: Iterable[Station],
        now: Optional[datetime] = None,
        generation: int = 0,
    ) -> Snapshot:
        """Poll every configured feed and assemble a new Snapshot.

        Args:
            stations: Stations to include; every one appears in the result.
            now: Refresh instant used for staleness; defaults to UTC now.
            generation: Refresh number stamped on the snapshot.
        """
        stations = list(stations)
        if now is None:
            now = datetime.now(timezone.utc)

        if self.strategy is FetchStrategy.CONCURRENT:
            window_results = await asyncio.gather(*[
                self._build_window(stations, window, now) for window in self.windows
            ])
        else:
            window_results = []
            for window in self.windows:
                window_results.append(await self._build_window(stations, window, now))
        by_window = dict(zip(self.windows, window_results))

        station_snapshots = {}
        for station in stations:
            station_snapshots[station.id] = StationSnapshot(
                station_id=station.id,
                name=station.name,
                coords=station.coords,
                windows={
                    window: by_window[window].get(station.id, {}) for window in self.windows
                },
            )

        snapshot = Snapshot(refreshed_at=now, stations=station_snapshots, generation=generation)
        statuses = snapshot.statuses()
        failed = sum(1 for status in statuses if not status.is_ok)
        logger.info(
            f"Built snapshot #{generation}: {len(station_snapshots)} stations, "
            f"{len(statuses) - failed} ok, {failed} errors"
        )
        return snapshot


async def build_snapshot(
    stations: Iterable[Station],
    thresholds: ThresholdTable,
    client,
    now: Optional[datetime] = None,
    **options,
) -> Snapshot:
    """Build a single snapshot with a one-off SnapshotBuilder."""
    return await SnapshotBuilder(client, thresholds, **options).build(stations, now=now)
