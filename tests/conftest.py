"""Pytest configuration, shared fixtures and fake upstream sources."""

import asyncio
import dataclasses
from typing import Any, Callable, Optional

import pytest

from ema_monitor.config.defaults import MonitorConfig, get_default_config
from ema_monitor.data.models import Tick, Timeframe


class FakeResponse:
    """Stands in for an aiohttp response context manager."""

    def __init__(self, status: int = 200, body: bytes = b"[]"):
        self.status = status
        self.body = body

    async def read(self) -> bytes:
        return self.body

    async def text(self) -> str:
        return self.body.decode()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Records GET requests and answers them from a list of responses."""

    def __init__(self, *responses: FakeResponse, error: Optional[Exception] = None):
        self.responses = list(responses) or [FakeResponse()]
        self.error = error
        self.requests: list[tuple[str, dict]] = []
        self.closed = False

    def get(self, url: str, params: Optional[dict] = None):
        self.requests.append((url, params or {}))
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    async def close(self) -> None:
        self.closed = True


class FakeConnection:
    """Stands in for a websockets client connection."""

    def __init__(self, messages: Optional[list] = None,
                 error: Optional[BaseException] = None, hold_open: bool = False):
        self.messages = messages or []
        self.error = error
        self.hold_open = hold_open
        self.exited = False

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self

    async def __aexit__(self, *exc_info):
        self.exited = True
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
            await asyncio.sleep(0)
        if self.hold_open:
            await asyncio.Event().wait()


class Hold:
    """Connector script step: deliver messages, then stay open until cancelled."""

    def __init__(self, *messages):
        self.messages = list(messages)


class FakeConnector:
    """
    Callable replacing websockets.connect.

    Each call consumes one script step: an exception (connect fails), a list
    of messages (delivered, then the remote closes) or a Hold. Once the script
    is exhausted, connections are held open with no messages.
    """

    def __init__(self, *script: Any):
        self.script = list(script)
        self.urls: list[str] = []
        self.kwargs: list[dict] = []
        self.connections: list[FakeConnection] = []

    def __call__(self, url: str, **kwargs) -> FakeConnection:
        self.urls.append(url)
        self.kwargs.append(kwargs)
        step = self.script.pop(0) if self.script else Hold()

        if isinstance(step, BaseException):
            connection = FakeConnection(error=step)
        elif isinstance(step, Hold):
            connection = FakeConnection(messages=step.messages, hold_open=True)
        else:
            connection = FakeConnection(messages=list(step))
        self.connections.append(connection)
        return connection

    @property
    def attempts(self) -> int:
        return len(self.urls)


class RecordingSleep:
    """Replaces asyncio.sleep for reconnect delays; records every delay."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeLoader:
    """In-memory historical source with optional per-symbol gates."""

    def __init__(self, histories: Optional[dict] = None, default: Optional[list] = None,
                 tickers: Optional[list[Tick]] = None, ticker_error: Optional[Exception] = None):
        self.histories = histories or {}
        self.default = default if default is not None else []
        self.tickers = tickers or []
        self.ticker_error = ticker_error
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, Timeframe]] = []
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    async def fetch_history(self, symbol: str, timeframe) -> list[float]:
        timeframe = Timeframe.parse(timeframe)
        self.calls.append((symbol, timeframe))
        gate = self.gates.get(symbol)
        if gate is not None:
            await gate.wait()
        result = self.histories.get((symbol, timeframe.value), self.default)
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def fetch_ticker_snapshots(self, symbols: list[str]) -> list[Tick]:
        if self.ticker_error is not None:
            raise self.ticker_error
        return [tick for tick in self.tickers if tick.symbol in symbols]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll the event loop until predicate holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.001)


def make_config(
    symbols: tuple[str, ...] = ("BTCUSDT",),
    timeframe: str = "1h",
    period: int = 50,
    capacity: int = 100,
    reconnect_delay: float = 0.01,
    seed_tickers: bool = False,
) -> MonitorConfig:
    """Default configuration with test-friendly overrides."""
    config = get_default_config()
    return dataclasses.replace(
        config,
        ema=dataclasses.replace(config.ema, period=period),
        history=dataclasses.replace(config.history, capacity=capacity),
        feed=dataclasses.replace(config.feed, reconnect_delay_seconds=reconnect_delay),
        engine=dataclasses.replace(
            config.engine,
            default_symbols=symbols,
            default_timeframe=timeframe,
            seed_tickers=seed_tickers,
        ),
    )


class _FakesNamespace:
    FakeResponse = FakeResponse
    FakeSession = FakeSession
    FakeConnection = FakeConnection
    FakeConnector = FakeConnector
    Hold = Hold
    RecordingSleep = RecordingSleep
    FakeLoader = FakeLoader
    wait_until = staticmethod(wait_until)
    make_config = staticmethod(make_config)


@pytest.fixture
def fakes() -> _FakesNamespace:
    """Namespace of fake upstream collaborators and helpers."""
    return _FakesNamespace()


@pytest.fixture
def ticker_message() -> Callable[..., str]:
    """Build a raw ticker stream message."""
    def build(symbol: str = "BTCUSDT", price: str = "43250.10", change: str = "-1.25") -> str:
        return (
            '{"e":"24hrTicker","E":1700000000000,'
            f'"s":"{symbol}","c":"{price}","P":"{change}","v":"1234.5"}}'
        )
    return build


@pytest.fixture
def candle_payload() -> Callable[[list[float]], list[list]]:
    """Build a candle array with the given closes (other fields are filler)."""
    def build(closes: list[float]) -> list[list]:
        return [
            [1700000000000 + i * 3600000, "1.0", "2.0", "0.5", str(close), "10.0",
             1700003599999 + i * 3600000, "100.0", 5, "5.0", "50.0", "0"]
            for i, close in enumerate(closes)
        ]
    return build
