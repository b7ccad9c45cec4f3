"""
Error classification for market data ingestion and aggregation.

This module provides the structured exception hierarchy used to report
problems with upstream feeds, inbound payloads and caller input. None of
these errors is fatal to the engine; they are caught at component
boundaries and reported through the structured log channel.
"""

from .data_quality import (
    DataQualityError,
    MalformedDataError,
)
from .feed_failures import (
    FeedError,
    TransportError,
    UpstreamUnavailableError,
)
from .validation import (
    ValidationError,
    InvalidSymbolError,
    InvalidTimeframeError,
    ConfigurationError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MalformedDataError",
    # Feed Failures
    "FeedError",
    "TransportError",
    "UpstreamUnavailableError",
    # Caller Input
    "ValidationError",
    "InvalidSymbolError",
    "InvalidTimeframeError",
    "ConfigurationError",
]
