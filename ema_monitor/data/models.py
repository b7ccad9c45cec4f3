"""
Canonical data models for normalized market data.

This module defines immutable data structures that represent clean, validated
market data after parsing from raw exchange formats, and the indicator
snapshot published by the engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ema_monitor.errors import InvalidTimeframeError


class Timeframe(str, Enum):
    """Sampling interval of the historical closes backing a price history."""
    H1 = "1h"
    H2 = "2h"
    H4 = "4h"
    D1 = "1d"

    @property
    def interval_code(self) -> str:
        """Interval code understood by the historical candle source."""
        return INTERVAL_CODES[self]

    @classmethod
    def parse(cls, value: Union["Timeframe", str]) -> "Timeframe":
        """
        Convert a caller-supplied key into a Timeframe.

        Raises:
            InvalidTimeframeError: value is not one of 1h, 2h, 4h, 1d
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidTimeframeError(
                f"Unsupported timeframe: {value!r}",
                value=value,
                context={"allowed": [tf.value for tf in cls]}
            ) from None


INTERVAL_CODES: dict[Timeframe, str] = {
    Timeframe.H1: "1h",
    Timeframe.H2: "2h",
    Timeframe.H4: "4h",
    Timeframe.D1: "1d",
}


@dataclass(frozen=True)
class Tick:
    """Single live price update for one instrument."""
    symbol: str                 # Uppercased exchange ticker
    price: float                # Last traded price
    change_24h_pct: float       # Rolling 24h percent change


@dataclass(frozen=True)
class TickParseResult:
    """Result of validating one inbound ticker message."""

    tick: Optional[Tick] = None

    success: bool = True
    error_msg: Optional[str] = None
    skipped_reason: Optional[str] = None

    @property
    def is_tick(self) -> bool:
        return self.success and self.tick is not None

    @classmethod
    def valid(cls, tick: Tick):
        """Create successful result with tick."""
        return cls(tick=tick, success=True)

    @classmethod
    def error(cls, error_msg: str):
        """Create error result."""
        return cls(success=False, error_msg=error_msg)

    @classmethod
    def skipped(cls, reason: str):
        """Create skipped result."""
        return cls(success=True, skipped_reason=reason)


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Latest indicator state for one instrument on the active timeframe."""
    symbol: str
    last_price: float = 0.0
    change_24h_pct: float = 0.0
    ema: float = 0.0                    # 0.0 while history is shorter than the period
    ema_percent_diff: float = 0.0
    timeframe: Timeframe = Timeframe.H1
    sample_count: int = 0

    @property
    def has_ema(self) -> bool:
        """True once enough closes exist for a real EMA value."""
        return self.ema != 0.0

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "price": self.last_price,
            "change24h": self.change_24h_pct,
            "ema": self.ema,
            "emaPercentDiff": self.ema_percent_diff,
            "timeframe": self.timeframe.value,
            "samples": self.sample_count,
        }
