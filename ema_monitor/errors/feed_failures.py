"""
Upstream feed failure classifications.

Transport problems on the live stream trigger a scheduled reconnect;
failed historical fetches leave the existing history untouched.
"""

from typing import Any, Optional


class FeedError(Exception):
    """Base class for failures talking to an upstream market data source."""

    def __init__(self, message: str, symbol: Optional[str] = None,
                 context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.symbol = symbol
        self.context = context or {}
        self.recoverable = True


class TransportError(FeedError):
    """Streaming connection dropped, refused or failed mid-read."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url


class UpstreamUnavailableError(FeedError):
    """Historical data source unreachable or answered with an error status."""

    def __init__(self, message: str, status: Optional[int] = None,
                 url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status
        self.url = url
