"""Historical candle backfill over HTTP."""

import asyncio
from typing import Any, Optional, Union

import aiohttp
import orjson

from ..config.defaults import BackfillParams
from ..data.models import Tick, Timeframe
from ..data.parsers import parse_candle_closes, parse_ticker_snapshots
from ..errors import UpstreamUnavailableError
from ..logging.config import get_backfill_logger


class HistoricalBackfillLoader:
    """
    Fetches windows of closing prices from the historical candle source.

    Failures surface as UpstreamUnavailableError (transport, non-200) or
    MalformedDataError (payload shape). No retries are attempted here; the
    caller decides when to fetch again.
    """

    def __init__(self, config: Optional[BackfillParams] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config or BackfillParams()
        self.session = session
        self._owns_session = session is None
        self.logger = get_backfill_logger(__name__)

    async def open(self) -> None:
        """Create the HTTP session unless one was injected."""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self.session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if this loader created it."""
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    async def _get(self, path: str, params: dict[str, Any],
                   symbol: Optional[str] = None) -> bytes:
        """GET a path on the REST source and return the raw body."""
        if self.session is None:
            await self.open()

        url = f"{self.config.rest_base_url.rstrip('/')}{path}"
        try:
            async with self.session.get(url, params=params) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise UpstreamUnavailableError(
                        f"HTTP {resp.status}: {body[:200]}",
                        status=resp.status,
                        url=url,
                        symbol=symbol
                    )
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamUnavailableError(
                f"Request failed: {e!r}",
                url=url,
                symbol=symbol
            ) from e

    async def fetch_history(self, symbol: str,
                            timeframe: Union[Timeframe, str]) -> list[float]:
        """
        Fetch up to `limit` closing prices, oldest first.

        Args:
            symbol: Uppercased instrument symbol
            timeframe: Timeframe key selecting the candle interval

        Returns:
            Closing prices ordered oldest to newest
        """
        timeframe = Timeframe.parse(timeframe)
        params = {
            "symbol": symbol,
            "interval": timeframe.interval_code,
            "limit": str(self.config.limit),
        }

        body = await self._get(self.config.klines_path, params, symbol=symbol)
        closes = parse_candle_closes(body, limit=self.config.limit)

        self.logger.debug(
            "Fetched historical closes",
            symbol=symbol,
            timeframe=timeframe.value,
            count=len(closes)
        )
        return closes

    async def fetch_ticker_snapshots(self, symbols: list[str]) -> list[Tick]:
        """
        Fetch 24h statistics for several symbols in one request.

        Returns:
            One tick per symbol the source answered for
        """
        if not symbols:
            return []

        params = {"symbols": orjson.dumps(list(symbols)).decode()}
        body = await self._get(self.config.ticker_path, params)
        ticks = parse_ticker_snapshots(body)

        self.logger.debug(
            "Fetched 24h ticker snapshots",
            requested=len(symbols),
            received=len(ticks)
        )
        return ticks
