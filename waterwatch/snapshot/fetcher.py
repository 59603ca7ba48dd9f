"""HTTP client for telemetry feeds."""

import asyncio
import logging
import re
from typing import Optional, Union

import aiohttp

from waterwatch.shared.exceptions import FeedHttpError, FeedNetworkError, FeedRejectedError

logger = logging.getLogger(__name__)

# Public eagle.io export links, e.g. https://api.eagle.io/api/v1/...
DEFAULT_FEED_URL_PATTERN = r"^https://([a-z0-9-]+\.)*eagle\.io/"


class FeedClient:
    """Fetches feed bodies over one shared aiohttp session.

    Use as an async context manager; addresses that do not match the
    allowed pattern are rejected without a request.
    """

    def __init__(
        self,
        timeout: float = 20.0,
        url_pattern: Union[str, re.Pattern] = DEFAULT_FEED_URL_PATTERN,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.timeout = timeout
        self.url_pattern = (
            re.compile(url_pattern, re.IGNORECASE) if isinstance(url_pattern, str) else url_pattern
        )
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "FeedClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Cache-Control": "no-cache"},
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def is_allowed(self, url: str) -> bool:
        return bool(self.url_pattern.match(url))

    async def fetch_text(self, url: str) -> str:
        """Fetch a feed body.

        Raises:
            FeedRejectedError: The address is outside the allowed pattern.
            FeedHttpError: The feed answered with a non-2xx status.
            FeedNetworkError: The request failed or timed out.
        """
        if not self.is_allowed(url):
            raise FeedRejectedError(url, "address rejected")
        if self._session is None:
            raise RuntimeError("FeedClient used outside of 'async with'")

        logger.debug(f"Fetching {url}")
        try:
            async with self._session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FeedHttpError(url, response.status)
                return await response.text(errors="replace")
        except asyncio.TimeoutError as e:
            raise FeedNetworkError(url, "timeout") from e
        except aiohttp.ClientError as e:
            raise FeedNetworkError(url, str(e) or e.__class__.__name__) from e
