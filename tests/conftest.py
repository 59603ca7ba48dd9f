"""Shared fixtures for waterwatch tests."""

import asyncio
from datetime import datetime, timezone

import pytest

from waterwatch.shared.exceptions import FeedHttpError
from waterwatch.shared.models import Station
from waterwatch.snapshot.thresholds import ThresholdTable

FEED_BASE = "https://api.eagle.io/api/v1/nodes"

NOW = datetime(2025, 1, 2, 0, 10, tzinfo=timezone.utc)


def feed_url(name: str) -> str:
    return f"{FEED_BASE}/{name}/historic/export?format=csv"


class FakeFeedClient:
    """Stands in for FeedClient: canned bodies or exceptions per url."""

    def __init__(self, responses=None, gate: asyncio.Event = None, delay: float = 0.0):
        self.responses = dict(responses or {})
        self.gate = gate
        self.delay = delay
        self.requested = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def fetch_text(self, url):
        self.requested.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.get(url, "")
        if isinstance(response, BaseException):
            raise response
        return response


def http_500(url: str) -> FeedHttpError:
    return FeedHttpError(url, 500)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def thresholds():
    return ThresholdTable.default()


@pytest.fixture
def seagrass():
    return Station(
        id="seagrass",
        name="Seagrass Beds",
        coords=(-45.07, 166.98),
        sensors=("top",),
        feeds={"top": {"turbidity_15d": feed_url("seagrass-15d")}},
    )
