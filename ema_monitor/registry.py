"""
Tracked instrument set.

Symbols are compared case-insensitively and stored uppercased. Adding a
symbol creates empty price histories for every timeframe before the
on_added hook runs, so the hook can immediately backfill and subscribe.
"""

from collections.abc import Iterator
from typing import Callable, Optional

import structlog

from .data.history import PriceHistoryStore
from .data.models import Timeframe
from .errors import InvalidSymbolError

logger = structlog.get_logger(__name__)

InstrumentHook = Callable[[str], None]


def normalize_symbol(symbol: str) -> str:
    """
    Canonical form of an instrument symbol.

    Raises:
        InvalidSymbolError: symbol is empty or not plain ASCII alphanumeric
    """
    if not isinstance(symbol, str):
        raise InvalidSymbolError("Symbol must be a string", value=symbol)

    canonical = symbol.strip().upper()
    if not canonical:
        raise InvalidSymbolError("Symbol is empty", value=symbol)
    if not (canonical.isascii() and canonical.isalnum()):
        raise InvalidSymbolError(f"Symbol must be alphanumeric: {symbol!r}", value=symbol)

    return canonical


class InstrumentRegistry:
    """Ordered set of tracked symbols."""

    def __init__(
        self,
        store: PriceHistoryStore,
        on_added: Optional[InstrumentHook] = None,
        on_removed: Optional[InstrumentHook] = None,
    ):
        self.store = store
        self.on_added = on_added
        self.on_removed = on_removed
        self._symbols: dict[str, None] = {}

    def add(self, symbol: str) -> bool:
        """Track a symbol. Returns False for invalid or already tracked symbols."""
        try:
            canonical = normalize_symbol(symbol)
        except InvalidSymbolError as e:
            logger.warning("Rejected instrument", symbol=symbol, error=str(e))
            return False

        if canonical in self._symbols:
            logger.debug("Instrument already tracked", symbol=canonical)
            return False

        self._symbols[canonical] = None
        self.store.ensure(canonical, tuple(Timeframe))

        logger.info("Added instrument", symbol=canonical, tracked=len(self._symbols))

        if self.on_added is not None:
            self.on_added(canonical)
        return True

    def remove(self, symbol: str) -> bool:
        """Stop tracking a symbol and drop its histories."""
        try:
            canonical = normalize_symbol(symbol)
        except InvalidSymbolError:
            return False

        if canonical not in self._symbols:
            return False

        del self._symbols[canonical]
        self.store.remove(canonical)

        logger.info("Removed instrument", symbol=canonical, tracked=len(self._symbols))

        if self.on_removed is not None:
            self.on_removed(canonical)
        return True

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.strip().upper() in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._symbols))
