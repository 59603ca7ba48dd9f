"""
Tests for staleness evaluation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from waterwatch.shared.models import parse_timestamp
from waterwatch.snapshot.staleness import is_stale

NOW = datetime(2025, 1, 2, 12, 0, tzinfo=timezone.utc)


def test_recent_reading_is_fresh():
    assert is_stale("2025-01-02T11:00:00.000Z", NOW) is False


def test_older_than_24h_is_stale():
    assert is_stale("2025-01-01T11:59:59Z", NOW) is True


def test_exactly_24h_is_not_stale():
    assert is_stale("2025-01-01T12:00:00Z", NOW) is False


@pytest.mark.parametrize("timestamp", [None, "", "not a date", "2025-13-45Tgarbage"])
def test_unparseable_timestamp_is_stale(timestamp):
    assert is_stale(timestamp, NOW) is True


def test_offset_timestamps_compared_as_instants():
    # 23:30+12:00 on Jan 2 is 11:30Z on Jan 2
    assert is_stale("2025-01-02T23:30:00+12:00", NOW) is False


def test_naive_timestamp_assumed_utc():
    assert is_stale("2025-01-01T11:00:00", NOW) is True
    assert is_stale("2025-01-02T11:00:00", NOW) is False


def test_naive_now_assumed_utc():
    assert is_stale("2025-01-02T11:00:00Z", NOW.replace(tzinfo=None)) is False


def test_custom_max_age():
    assert is_stale("2025-01-02T10:00:00Z", NOW, max_age=timedelta(hours=1)) is True


def test_parse_timestamp_normalizes_to_utc():
    parsed = parse_timestamp("2025-01-02T10:00:00.000+02:00")
    assert parsed == datetime(2025, 1, 2, 8, 0, tzinfo=timezone.utc)
