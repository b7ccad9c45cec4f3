"""
Main aggregation engine coordinator.

Orchestrates the market data pipeline, coordinating the instrument registry,
historical backfills, live ticker streams, price histories and indicator
snapshots.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from functools import partial
from types import MappingProxyType
from typing import Any, Callable, Optional, Union

import structlog

from .config.defaults import MonitorConfig, get_default_config
from .data.history import PriceHistoryStore
from .data.models import IndicatorSnapshot, Tick, Timeframe
from .errors import (
    InvalidTimeframeError,
    MalformedDataError,
    UpstreamUnavailableError,
)
from .feeds.backfill import HistoricalBackfillLoader
from .feeds.live import LiveFeedSubscriber
from .metrics.ema import compute_ema, compute_ema_percent_diff
from .registry import InstrumentRegistry

logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[IndicatorSnapshot], None]


@dataclass
class _Quote:
    """Latest live values for one instrument."""
    last_price: float = 0.0
    change_24h_pct: float = 0.0


class AggregationCoordinator:
    """
    Main coordinator for the EMA monitor.

    Manages the pipeline:
    Registry → Backfill / Live ticks → Price histories → EMA → Snapshots

    All public methods must be called from the event loop thread. Methods
    that start I/O (add_instrument, set_timeframe, refresh) schedule tasks
    and return immediately; failures are reported through the log channel.
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        loader: Optional[HistoricalBackfillLoader] = None,
        connect: Optional[Callable[..., Any]] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ) -> None:
        """Initialize the coordinator with the configured default instruments."""
        self.config = config or get_default_config()
        self.logger = logger

        self.store = PriceHistoryStore(self.config.history)
        self.loader = loader or HistoricalBackfillLoader(self.config.backfill)
        self.subscriber = LiveFeedSubscriber(
            self.handle_tick, self.config.feed, connect=connect, sleep=sleep
        )
        self.registry = InstrumentRegistry(
            self.store,
            on_added=self._on_instrument_added,
            on_removed=self._on_instrument_removed,
        )

        self._timeframe = Timeframe.parse(self.config.engine.default_timeframe)
        self._quotes: dict[str, _Quote] = {}
        self._snapshots: dict[str, IndicatorSnapshot] = {}
        self._backfills: dict[str, asyncio.Task] = {}    # newest task per symbol
        self._inflight: set[asyncio.Task] = set()
        self._listeners: list[SnapshotListener] = []
        self._running = False

        for symbol in self.config.engine.default_symbols:
            self.registry.add(symbol)

        self.logger.info(
            "Aggregation coordinator initialized",
            instruments=self.registry.symbols,
            timeframe=self._timeframe.value
        )

    @property
    def timeframe(self) -> Timeframe:
        return self._timeframe

    @property
    def running(self) -> bool:
        return self._running

    @property
    def symbols(self) -> list[str]:
        return self.registry.symbols

    async def __aenter__(self) -> "AggregationCoordinator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self) -> None:
        """Seed tickers, backfill every instrument and open live streams."""
        if self._running:
            return
        self._running = True

        await self.loader.open()

        if self.config.engine.seed_tickers:
            await self._seed_tickers()

        for symbol in self.registry:
            self._activate(symbol)

        self.logger.info(
            "Aggregation coordinator started",
            instruments=len(self.registry),
            timeframe=self._timeframe.value
        )

    async def stop(self) -> None:
        """Cancel in-flight backfills and close every connection."""
        if not self._running:
            return
        self._running = False

        tasks = list(self._inflight)
        self._backfills.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        await self.subscriber.close()
        await self.loader.close()

        self.logger.info("Aggregation coordinator stopped", cancelled_backfills=len(tasks))

    def add_instrument(self, symbol: str) -> bool:
        """Track a new instrument. Returns False if invalid or already tracked."""
        return self.registry.add(symbol)

    def remove_instrument(self, symbol: str) -> bool:
        """Stop tracking an instrument and close its stream."""
        return self.registry.remove(symbol)

    def set_timeframe(self, key: Union[Timeframe, str]) -> bool:
        """
        Switch the active timeframe and re-backfill every instrument.

        Live streams stay open; only the history that ticks append to and
        that indicators are computed from changes. Snapshots keep their
        previous values until each instrument's backfill lands or a new
        tick arrives.

        Returns:
            False if key is not one of 1h, 2h, 4h, 1d
        """
        try:
            timeframe = Timeframe.parse(key)
        except InvalidTimeframeError as e:
            self.logger.warning("Rejected timeframe", value=key, error=str(e))
            return False

        if timeframe == self._timeframe:
            return True

        previous = self._timeframe
        self._timeframe = timeframe
        self.logger.info(
            "Timeframe changed",
            from_timeframe=previous.value,
            to_timeframe=timeframe.value
        )

        if self._running:
            for symbol in self.registry:
                self._schedule_backfill(symbol, timeframe)
        return True

    def refresh(self) -> None:
        """Re-run the backfill of the active timeframe for every instrument."""
        if not self._running:
            return
        for symbol in self.registry:
            self._schedule_backfill(symbol, self._timeframe)

    def handle_tick(self, tick: Tick) -> None:
        """Append a live price to the active history and publish a new snapshot."""
        quote = self._quotes.get(tick.symbol)
        if quote is None:
            self.logger.debug("Ignored tick for untracked instrument", symbol=tick.symbol)
            return

        self.store.append(tick.symbol, self._timeframe, tick.price)
        quote.last_price = tick.price
        quote.change_24h_pct = tick.change_24h_pct
        self._recompute(tick.symbol)

    def snapshots(self) -> Mapping[str, IndicatorSnapshot]:
        """Read-only point-in-time view of every instrument's snapshot."""
        return MappingProxyType(dict(self._snapshots))

    def snapshot(self, symbol: str) -> Optional[IndicatorSnapshot]:
        return self._snapshots.get(symbol.strip().upper())

    def history(self, symbol: str,
                timeframe: Optional[Union[Timeframe, str]] = None) -> tuple[float, ...]:
        tf = Timeframe.parse(timeframe) if timeframe is not None else self._timeframe
        return self.store.get(symbol.strip().upper(), tf)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a listener called with every published snapshot.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_for_backfills(self) -> None:
        """Wait until no backfill is in flight."""
        while True:
            pending = [task for task in self._inflight if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _on_instrument_added(self, symbol: str) -> None:
        self._quotes[symbol] = _Quote()
        self._snapshots[symbol] = IndicatorSnapshot(symbol=symbol, timeframe=self._timeframe)
        if self._running:
            self._activate(symbol)

    def _on_instrument_removed(self, symbol: str) -> None:
        task = self._backfills.pop(symbol, None)
        if task is not None:
            task.cancel()
        self.subscriber.unsubscribe(symbol)
        self._quotes.pop(symbol, None)
        self._snapshots.pop(symbol, None)

    def _activate(self, symbol: str) -> None:
        self._schedule_backfill(symbol, self._timeframe)
        self.subscriber.subscribe(symbol)

    def _schedule_backfill(self, symbol: str, timeframe: Timeframe) -> None:
        """Start a backfill task, superseding any in flight for the symbol."""
        previous = self._backfills.get(symbol)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.get_running_loop().create_task(
            self._backfill(symbol, timeframe),
            name=f"backfill-{symbol}-{timeframe.value}"
        )
        self._backfills[symbol] = task
        self._inflight.add(task)
        task.add_done_callback(partial(self._backfill_done, symbol))

    def _backfill_done(self, symbol: str, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if self._backfills.get(symbol) is task:
            del self._backfills[symbol]

        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(
                "Backfill crashed",
                symbol=symbol,
                error=str(error),
                error_type=type(error).__name__
            )

    async def _backfill(self, symbol: str, timeframe: Timeframe) -> None:
        """Replace one history with fresh closes; keep it on failure."""
        try:
            closes = await self.loader.fetch_history(symbol, timeframe)
        except (UpstreamUnavailableError, MalformedDataError) as e:
            self.logger.warning(
                "Backfill failed, keeping existing history",
                symbol=symbol,
                timeframe=timeframe.value,
                error=str(e),
                error_type=type(e).__name__
            )
            return

        if symbol not in self._quotes:
            return

        count = self.store.replace(symbol, timeframe, closes)
        self.logger.info(
            "Backfilled price history",
            symbol=symbol,
            timeframe=timeframe.value,
            count=count
        )

        if timeframe == self._timeframe:
            self._recompute(symbol)

    async def _seed_tickers(self) -> None:
        """Fill last price and 24h change before the first live tick."""
        try:
            ticks = await self.loader.fetch_ticker_snapshots(self.registry.symbols)
        except (UpstreamUnavailableError, MalformedDataError) as e:
            self.logger.warning("Ticker seed failed", error=str(e), error_type=type(e).__name__)
            return

        for tick in ticks:
            quote = self._quotes.get(tick.symbol)
            if quote is None:
                continue
            quote.last_price = tick.price
            quote.change_24h_pct = tick.change_24h_pct
            self._recompute(tick.symbol)

    def _recompute(self, symbol: str) -> None:
        """Derive and publish the snapshot for the active timeframe."""
        quote = self._quotes[symbol]
        prices = self.store.get(symbol, self._timeframe)

        # Before the first tick or seed, the newest close stands in for the last price
        price = quote.last_price
        if price <= 0 and prices:
            price = prices[-1]

        ema = compute_ema(prices, self.config.ema.period)
        diff = compute_ema_percent_diff(price, ema) if price > 0 else 0.0

        snapshot = IndicatorSnapshot(
            symbol=symbol,
            last_price=price,
            change_24h_pct=quote.change_24h_pct,
            ema=ema,
            ema_percent_diff=diff,
            timeframe=self._timeframe,
            sample_count=len(prices),
        )
        self._snapshots[symbol] = snapshot
        self._publish(snapshot)

    def _publish(self, snapshot: IndicatorSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                self.logger.error(
                    "Snapshot listener failed",
                    symbol=snapshot.symbol,
                    error=str(e),
                    exc_info=True
                )
