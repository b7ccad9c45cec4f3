"""Default configuration parameters for the EMA monitor."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class EMAParams:
    """Indicator parameters."""
    period: int = 50                                 # EMA-50 by default


@dataclass(frozen=True)
class HistoryParams:
    """Rolling price history parameters."""
    capacity: int = 100                              # Closes kept per (symbol, timeframe)


@dataclass(frozen=True)
class FeedParams:
    """Live ticker stream parameters."""
    ws_base_url: str = "wss://stream.binance.com:9443/ws"
    stream_suffix: str = "@ticker"
    reconnect_delay_seconds: float = 3.0             # Fixed delay, retried forever
    ping_interval_seconds: float = 20.0


@dataclass(frozen=True)
class BackfillParams:
    """Historical candle source parameters."""
    rest_base_url: str = "https://api.binance.com"
    klines_path: str = "/api/v3/klines"
    ticker_path: str = "/api/v3/ticker/24hr"
    limit: int = 100                                 # Candles requested per backfill
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class EngineParams:
    """Coordinator parameters."""
    default_symbols: tuple[str, ...] = ("BTCUSDT", "ETHUSDT", "SOLUSDT", "INJUSDT", "HYPEUSDT")
    default_timeframe: str = "1h"
    seed_tickers: bool = True                        # Seed last price / 24h change on start


@dataclass(frozen=True)
class MonitorConfig:
    """Complete default configuration."""
    ema: EMAParams = field(default_factory=EMAParams)
    history: HistoryParams = field(default_factory=HistoryParams)
    feed: FeedParams = field(default_factory=FeedParams)
    backfill: BackfillParams = field(default_factory=BackfillParams)
    engine: EngineParams = field(default_factory=EngineParams)


def get_default_config() -> MonitorConfig:
    """Get the default configuration instance."""
    return MonitorConfig(
        ema=EMAParams(),
        history=HistoryParams(),
        feed=FeedParams(),
        backfill=BackfillParams(),
        engine=EngineParams(),
    )
