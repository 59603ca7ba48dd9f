"""
Tests for the snapshot service lifecycle.
"""

import asyncio

import pytest

from waterwatch.shared.models import ClassificationLevel, TimeWindow
from waterwatch.snapshot.config import SnapshotConfig
from waterwatch.snapshot.service import SnapshotService

from .conftest import FakeFeedClient, feed_url

FRESH_FEED = "2999-01-01T00:00:00Z,3.1"


def make_service(stations, factory, **overrides):
    config = SnapshotConfig(**{"refresh_interval": 3600, **overrides})
    return SnapshotService(config, stations, client_factory=factory)


async def wait_for(predicate, attempts=100):
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return False


class TestRefresh:
    """Test explicit refresh()."""

    @pytest.mark.asyncio
    async def test_no_snapshot_before_first_refresh(self, seagrass):
        service = make_service([seagrass], FakeFeedClient)
        assert service.get_snapshot() is None

    @pytest.mark.asyncio
    async def test_refresh_publishes_new_snapshot(self, seagrass):
        client = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED})
        service = make_service([seagrass], lambda: client)

        first = await service.refresh()
        second = await service.refresh()

        assert first is not second
        assert (first.generation, second.generation) == (1, 2)
        assert service.get_snapshot() is second
        status = second.get("seagrass").sensor(TimeWindow.LONG, "top")
        assert status.level is ClassificationLevel.AMBER

    @pytest.mark.asyncio
    async def test_uses_thresholds_from_config(self, seagrass):
        client = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED})
        config = SnapshotConfig(thresholds={"seagrass": {"15d": {"amber": 5.0, "red": 6.0}}})
        service = SnapshotService(config, [seagrass], client_factory=lambda: client)

        snapshot = await service.refresh()

        status = snapshot.get("seagrass").sensor(TimeWindow.LONG, "top")
        assert status.level is ClassificationLevel.GREEN

    @pytest.mark.asyncio
    async def test_superseded_build_is_discarded(self, seagrass):
        gate = asyncio.Event()
        slow = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED}, gate=gate)
        fast = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED})
        clients = iter([slow, fast])
        service = make_service([seagrass], lambda: next(clients))

        slow_task = asyncio.ensure_future(service.refresh())
        await asyncio.sleep(0)
        newer = await service.refresh()
        gate.set()
        older = await slow_task

        assert older.generation == 1
        assert service.get_snapshot() is newer

    @pytest.mark.asyncio
    async def test_last_writer_wins_without_discard(self, seagrass):
        gate = asyncio.Event()
        slow = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED}, gate=gate)
        fast = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED})
        clients = iter([slow, fast])
        service = make_service([seagrass], lambda: next(clients), discard_superseded=False)

        slow_task = asyncio.ensure_future(service.refresh())
        await asyncio.sleep(0)
        await service.refresh()
        gate.set()
        older = await slow_task

        assert service.get_snapshot() is older


class TestLifecycle:
    """Test start()/stop()."""

    @pytest.mark.asyncio
    async def test_start_builds_and_stop_cancels(self, seagrass):
        client = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED})
        service = make_service([seagrass], lambda: client)

        task = service.start()
        assert service.start() is task
        assert await wait_for(lambda: service.get_snapshot() is not None)

        await service.stop()

        assert task.done()
        assert service.running is False
        assert service.get_snapshot().generation == 1

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_loop_alive(self, seagrass):
        def broken_factory():
            raise RuntimeError("no client")

        service = make_service([seagrass], broken_factory, refresh_interval=0.01)

        task = service.start()
        assert await wait_for(lambda: service.generation >= 2)

        assert not task.done()
        assert service.get_snapshot() is None
        await service.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_inflight_build(self, seagrass):
        gate = asyncio.Event()
        client = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED}, gate=gate)
        service = make_service([seagrass], lambda: client)

        service.start()
        assert await wait_for(lambda: len(client.requested) == 1)
        await service.stop()

        assert service.get_snapshot() is None

    @pytest.mark.asyncio
    async def test_builds_slower_than_interval_still_publish(self, seagrass):
        client = FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED}, delay=0.05)
        service = make_service([seagrass], lambda: client, refresh_interval=0.02)

        service.start()
        assert await wait_for(lambda: service.get_snapshot() is not None)
        published = service.get_snapshot().generation
        assert await wait_for(lambda: service.get_snapshot().generation > published)
        await service.stop()

    @pytest.mark.asyncio
    async def test_published_generation_never_goes_backwards(self, seagrass):
        gates = [asyncio.Event(), asyncio.Event()]
        clients = iter(
            [FakeFeedClient({feed_url("seagrass-15d"): FRESH_FEED}, gate=gate) for gate in gates]
        )
        service = make_service([seagrass], lambda: next(clients))

        first = asyncio.ensure_future(service.refresh())
        second = asyncio.ensure_future(service.refresh())
        await asyncio.sleep(0)

        gates[0].set()
        await first
        assert service.get_snapshot().generation == 1

        gates[1].set()
        await second
        assert service.get_snapshot().generation == 2
