"""
Tests for the aiohttp feed client.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock

import aiohttp
import pytest

from waterwatch.shared.exceptions import FeedHttpError, FeedNetworkError, FeedRejectedError
from waterwatch.snapshot.fetcher import FeedClient

URL = "https://api.eagle.io/api/v1/nodes/abc/historic/export?format=csv"


def mock_session(status=200, body="", enter_error=None):
    """Session whose get() returns an async context manager response."""
    response = Mock()
    response.status = status
    response.text = AsyncMock(return_value=body)

    context = MagicMock()
    if enter_error is not None:
        context.__aenter__ = AsyncMock(side_effect=enter_error)
    else:
        context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = Mock()
    session.get = Mock(return_value=context)
    return session


class TestFeedClient:
    """Test FeedClient functionality."""

    def test_allowed_pattern(self):
        client = FeedClient()
        assert client.is_allowed(URL)
        assert client.is_allowed("https://eagle.io/x")
        assert not client.is_allowed("http://api.eagle.io/x")
        assert not client.is_allowed("https://example.com/eagle.io/x")
        assert not client.is_allowed("https://noteagle.io.example.com/x")

    def test_custom_pattern(self):
        client = FeedClient(url_pattern=r"^https://feeds\.example\.org/")
        assert client.is_allowed("https://feeds.example.org/a")
        assert not client.is_allowed(URL)

    @pytest.mark.asyncio
    async def test_fetch_success(self):
        session = mock_session(body="2025-01-01T00:00:00Z,3.4")
        client = FeedClient(session=session)

        text = await client.fetch_text(URL)

        assert text == "2025-01-01T00:00:00Z,3.4"
        session.get.assert_called_once_with(URL)

    @pytest.mark.asyncio
    async def test_undecodable_bytes_are_replaced(self):
        session = mock_session(body="Timestamp,Turbidity (\ufffdFNU)\n2025-01-01T00:00:00Z,3.4")
        client = FeedClient(session=session)

        text = await client.fetch_text(URL)

        assert text.endswith("3.4")
        response = await session.get.return_value.__aenter__()
        response.text.assert_awaited_once_with(errors="replace")

    @pytest.mark.asyncio
    async def test_non_success_status_raises_http_error(self):
        client = FeedClient(session=mock_session(status=500))

        with pytest.raises(FeedHttpError) as excinfo:
            await client.fetch_text(URL)

        assert excinfo.value.status == 500
        assert str(excinfo.value) == "HTTP 500"

    @pytest.mark.asyncio
    async def test_rejected_address_is_never_requested(self):
        session = mock_session()
        client = FeedClient(session=session)

        with pytest.raises(FeedRejectedError):
            await client.fetch_text("https://example.com/feed.csv")

        session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_client_error_raises_network_error(self):
        session = Mock()
        session.get = Mock(side_effect=aiohttp.ClientConnectionError("connection refused"))
        client = FeedClient(session=session)

        with pytest.raises(FeedNetworkError) as excinfo:
            await client.fetch_text(URL)

        assert "connection refused" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_timeout_raises_network_error(self):
        client = FeedClient(session=mock_session(enter_error=asyncio.TimeoutError()))

        with pytest.raises(FeedNetworkError) as excinfo:
            await client.fetch_text(URL)

        assert str(excinfo.value) == "timeout"

    @pytest.mark.asyncio
    async def test_fetch_outside_context_manager(self):
        client = FeedClient()
        with pytest.raises(RuntimeError):
            await client.fetch_text(URL)

    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self):
        session = mock_session()
        session.close = AsyncMock()

        async with FeedClient(session=session):
            pass

        session.close.assert_not_called()
