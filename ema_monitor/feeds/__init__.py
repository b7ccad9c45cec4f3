"""
Upstream market data sources.

Historical candle backfill over HTTP and live ticker streams over WebSocket.
"""
from .backfill import HistoricalBackfillLoader
from .live import ConnectionState, FeedStats, LiveFeedSubscriber

__all__ = [
    "HistoricalBackfillLoader",
    "LiveFeedSubscriber",
    "ConnectionState",
    "FeedStats",
]
