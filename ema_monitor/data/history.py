"""
Rolling per-instrument, per-timeframe price histories.

Each (symbol, timeframe) key owns a bounded FIFO window of closing prices,
oldest first. Appends evict the oldest entry once the window is full;
replace overwrites the window entirely.
"""

import threading
from collections import deque
from collections.abc import Iterable
from typing import Optional

from ema_monitor.config.defaults import HistoryParams

from .models import Timeframe

HistoryKey = tuple[str, Timeframe]


class PriceHistoryStore:
    """Bounded closing-price windows keyed by (symbol, timeframe)."""

    def __init__(self, config: Optional[HistoryParams] = None):
        self.config = config or HistoryParams()
        self.capacity = self.config.capacity
        self._histories: dict[HistoryKey, deque] = {}
        self._locks: dict[HistoryKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, key: HistoryKey) -> threading.Lock:
        """Get or create the write lock for a key."""
        lock = self._locks.get(key)
        if lock is None:
            with self._registry_lock:
                lock = self._locks.setdefault(key, threading.Lock())
                self._histories.setdefault(key, deque(maxlen=self.capacity))
        return lock

    def ensure(self, symbol: str, timeframes: Iterable[Timeframe] = tuple(Timeframe)) -> None:
        """Create empty histories for a symbol."""
        for timeframe in timeframes:
            self._lock_for((symbol, timeframe))

    def append(self, symbol: str, timeframe: Timeframe, price: float) -> int:
        """Append a price, evicting the oldest beyond capacity. Returns new length."""
        key = (symbol, timeframe)
        with self._lock_for(key):
            history = self._histories[key]
            history.append(price)
            return len(history)

    def replace(self, symbol: str, timeframe: Timeframe, prices: Iterable[float]) -> int:
        """Overwrite the whole window. Only the newest `capacity` prices are kept."""
        key = (symbol, timeframe)
        with self._lock_for(key):
            self._histories[key] = deque(prices, maxlen=self.capacity)
            return len(self._histories[key])

    def get(self, symbol: str, timeframe: Timeframe) -> tuple[float, ...]:
        """Point-in-time copy of a window, empty for unknown keys."""
        key = (symbol, timeframe)
        lock = self._locks.get(key)
        if lock is None:
            return ()
        with lock:
            return tuple(self._histories[key])

    def length(self, symbol: str, timeframe: Timeframe) -> int:
        history = self._histories.get((symbol, timeframe))
        return len(history) if history is not None else 0

    def remove(self, symbol: str) -> None:
        """Drop every window of a symbol."""
        with self._registry_lock:
            for key in [k for k in self._histories if k[0] == symbol]:
                del self._histories[key]
                del self._locks[key]

    def keys(self) -> list[HistoryKey]:
        return list(self._histories)
