"""Exceptions raised by waterwatch."""

from typing import Optional


class WaterwatchError(Exception):
    """Base exception for waterwatch."""


class ConfigurationError(WaterwatchError):
    """Station or engine configuration could not be loaded."""


class FeedError(WaterwatchError):
    """A single feed could not be fetched."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class FeedRejectedError(FeedError):
    """Feed address is outside the allowed origin/path pattern."""


class FeedNetworkError(FeedError):
    """Request raised or timed out before a response arrived."""


class FeedHttpError(FeedError):
    """Feed answered with a non-success status code."""

    def __init__(self, url: str, status: int, message: Optional[str] = None):
        super().__init__(url, message or f"HTTP {status}")
        self.status = status
