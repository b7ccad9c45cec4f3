"""
Live ticker stream subscriptions.

One asyncio task per instrument keeps a WebSocket connection to the
instrument's ticker channel open. Each task cycles through

    CONNECTING -> OPEN -> (messages)* -> CLOSED -> CONNECTING ...

waiting a fixed delay after every close or failure. Retries are
unbounded. Cancelling the task (unsubscribe or close) is the only way out
and moves the subscription to STOPPED.
"""

import asyncio
import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

import websockets
from websockets.exceptions import WebSocketException

from ..config.defaults import FeedParams
from ..data.models import Tick
from ..data.parsers import parse_ticker_message
from ..errors import TransportError
from ..logging.config import get_feed_logger, log_connection_state

TickHandler = Callable[[Tick], None]
SleepFunc = Callable[[float], Awaitable[None]]


class ConnectionState(Enum):
    """Lifecycle of one instrument subscription."""
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    STOPPED = "stopped"


@dataclass
class FeedStats:
    """Counters for one instrument subscription."""
    symbol: str
    state: ConnectionState = ConnectionState.CONNECTING
    connect_attempts: int = 0
    reconnects: int = 0
    messages_received: int = 0
    ticks_forwarded: int = 0
    parse_failures: int = 0
    last_error: Optional[str] = None


class LiveFeedSubscriber:
    """Maintains one reconnecting ticker stream per subscribed symbol."""

    def __init__(
        self,
        on_tick: TickHandler,
        config: Optional[FeedParams] = None,
        connect: Optional[Callable[..., Any]] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        self.config = config or FeedParams()
        self.on_tick = on_tick
        self._connect = connect or websockets.connect
        self._sleep = sleep or asyncio.sleep
        self._tasks: dict[str, asyncio.Task] = {}
        self._stopping: set[asyncio.Task] = set()
        self._stats: dict[str, FeedStats] = {}
        self.logger = get_feed_logger(__name__)

    @property
    def symbols(self) -> list[str]:
        return list(self._tasks)

    def stream_url(self, symbol: str) -> str:
        """Ticker channel URL for a symbol."""
        return f"{self.config.ws_base_url.rstrip('/')}/{symbol.lower()}{self.config.stream_suffix}"

    def subscribe(self, symbol: str) -> bool:
        """
        Start the connection task for a symbol.

        Must be called from a running event loop. Returns False if the
        symbol already has a live task.
        """
        task = self._tasks.get(symbol)
        if task is not None and not task.done():
            return False

        self._stats[symbol] = FeedStats(symbol=symbol)
        self._tasks[symbol] = asyncio.get_running_loop().create_task(
            self._run(symbol), name=f"live-feed-{symbol}"
        )
        return True

    def unsubscribe(self, symbol: str) -> bool:
        """Permanently stop the connection task for a symbol."""
        task = self._tasks.pop(symbol, None)
        if task is None:
            return False

        task.cancel()
        self._stopping.add(task)
        task.add_done_callback(self._stopping.discard)
        return True

    async def close(self) -> None:
        """Cancel every connection and pending reconnect, and wait for them."""
        tasks = list(self._tasks.values()) + list(self._stopping)
        self._tasks.clear()

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self.logger.info("Live feed closed", subscriptions=len(tasks))

    def stats(self, symbol: str) -> Optional[FeedStats]:
        """Copy of the counters for a symbol."""
        stats = self._stats.get(symbol)
        return dataclasses.replace(stats) if stats is not None else None

    def states(self) -> dict[str, ConnectionState]:
        return {symbol: stats.state for symbol, stats in self._stats.items()}

    def _set_state(self, symbol: str, state: ConnectionState, reason: str,
                   context: Optional[dict[str, Any]] = None) -> None:
        stats = self._stats[symbol]
        previous = stats.state
        stats.state = state
        log_connection_state(
            self.logger,
            symbol=symbol,
            from_state=previous.value,
            to_state=state.value,
            reason=reason,
            context=context
        )

    async def _run(self, symbol: str) -> None:
        """Connection loop for one symbol; runs until cancelled."""
        url = self.stream_url(symbol)
        stats = self._stats[symbol]
        delay = self.config.reconnect_delay_seconds
        reason = "subscribed"

        try:
            while True:
                if stats.connect_attempts > 0:
                    stats.reconnects += 1
                stats.connect_attempts += 1
                self._set_state(symbol, ConnectionState.CONNECTING, reason)

                try:
                    await self._listen(symbol, url)
                    reason = "remote_close"
                except TransportError as e:
                    reason = "transport_error"
                    stats.last_error = str(e)
                except Exception as e:
                    reason = "unexpected_error"
                    stats.last_error = repr(e)
                    self.logger.error(
                        "Unexpected stream failure",
                        symbol=symbol,
                        error=repr(e),
                        error_type=type(e).__name__,
                        exc_info=True
                    )

                self._set_state(
                    symbol, ConnectionState.CLOSED, reason,
                    context={"retry_in_seconds": delay, "error": stats.last_error}
                )
                await self._sleep(delay)
                reason = "reconnect"

        except asyncio.CancelledError:
            self._set_state(symbol, ConnectionState.STOPPED, "unsubscribed")
            raise

    async def _listen(self, symbol: str, url: str) -> None:
        """Hold one connection open and dispatch its messages until it closes."""
        try:
            async with self._connect(url, ping_interval=self.config.ping_interval_seconds) as ws:
                self._set_state(symbol, ConnectionState.OPEN, "connected", context={"url": url})
                async for raw in ws:
                    self._dispatch(symbol, raw)
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"Stream failure for {symbol}: {e!r}",
                url=url,
                symbol=symbol
            ) from e

    def _dispatch(self, symbol: str, raw: Union[str, bytes]) -> None:
        """Validate one message and forward it as a tick."""
        stats = self._stats[symbol]
        stats.messages_received += 1

        result = parse_ticker_message(raw)
        if not result.success:
            stats.parse_failures += 1
            self.logger.warning(
                "Dropped malformed ticker message",
                symbol=symbol,
                error=result.error_msg
            )
            return

        if result.tick is None:
            self.logger.debug(
                "Ignored non-ticker message",
                symbol=symbol,
                reason=result.skipped_reason
            )
            return

        if result.tick.symbol != symbol:
            self.logger.warning(
                "Dropped ticker for foreign symbol",
                symbol=symbol,
                message_symbol=result.tick.symbol
            )
            return

        try:
            self.on_tick(result.tick)
        except Exception as e:
            self.logger.error(
                "Tick handler failed",
                symbol=symbol,
                error=str(e),
                exc_info=True
            )
            return

        stats.ticks_forwarded += 1
