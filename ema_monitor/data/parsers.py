"""
Exchange payload parsers for converting raw ticker and candle formats to
normalized objects.

This is the ingestion boundary: every inbound stream message and every
historical response is validated here explicitly, and produces either a
normalized value or a tagged failure.
"""

import math
from typing import Any, Union

import orjson

from ..errors import MalformedDataError
from .models import Tick, TickParseResult

# Ticker stream fields: symbol, last price, 24h percent change
TICKER_FIELDS = ("s", "c", "P")

# Candle record index holding the close price
CANDLE_CLOSE_INDEX = 4


def _to_float(value: Any, field: str) -> float:
    """Convert a string or numeric field to a finite float."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedDataError(
            f"Field {field} has unsupported type {type(value).__name__}",
            raw_data=repr(value)[:200],
            expected_format="numeric string or number"
        )
    try:
        result = float(value)
    except ValueError:
        raise MalformedDataError(
            f"Field {field} is not numeric: {value!r}",
            raw_data=repr(value)[:200],
            expected_format="numeric string or number"
        ) from None
    if not math.isfinite(result):
        raise MalformedDataError(
            f"Field {field} is not finite: {value!r}",
            raw_data=repr(value)[:200]
        )
    return result


def _load_json(raw: Union[str, bytes]) -> Any:
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise MalformedDataError(
            f"Invalid JSON: {e}",
            raw_data=raw[:200] if isinstance(raw, str) else raw[:200].decode("utf-8", "replace"),
            expected_format="JSON"
        ) from e


def parse_ticker_message(raw: Union[str, bytes, dict[str, Any]]) -> TickParseResult:
    """
    Validate one inbound ticker stream message.

    Expected format (only the fields consumed are listed):
    {"e": "24hrTicker", "s": "BTCUSDT", "c": "43250.10", "P": "-1.234", ...}

    Messages that do not carry all of s, c and P (subscription acks, other
    event types) are skipped. Messages that carry them with unusable values,
    or are not JSON at all, are errors.
    """
    if isinstance(raw, dict):
        data = raw
    else:
        try:
            data = _load_json(raw)
        except MalformedDataError as e:
            return TickParseResult.error(str(e))

    if not isinstance(data, dict):
        return TickParseResult.skipped(f"Unrecognized message type: {type(data).__name__}")

    missing = [field for field in TICKER_FIELDS if data.get(field) in (None, "")]
    if missing:
        return TickParseResult.skipped(f"Missing ticker fields: {missing}")

    symbol = data["s"]
    if not isinstance(symbol, str) or not symbol.strip():
        return TickParseResult.error(f"Invalid symbol field: {symbol!r}")

    try:
        price = _to_float(data["c"], "c")
        change = _to_float(data["P"], "P")
    except MalformedDataError as e:
        return TickParseResult.error(str(e))

    if price <= 0:
        return TickParseResult.error(f"Non-positive last price: {price}")

    return TickParseResult.valid(Tick(
        symbol=symbol.strip().upper(),
        price=price,
        change_24h_pct=change
    ))


def parse_candle_closes(payload: Any, limit: int = 100) -> list[float]:
    """
    Extract closing prices from a historical candle response.

    Expected format: top-level array of candle records
    [[open_time, open, high, low, close, volume, ...], ...]
    ordered oldest first. Only the newest `limit` closes are returned.

    Raises:
        MalformedDataError: payload is not an array, or a record has no
            usable close
    """
    if isinstance(payload, (str, bytes)):
        payload = _load_json(payload)

    if not isinstance(payload, list):
        raise MalformedDataError(
            f"Candle payload must be an array, got {type(payload).__name__}",
            raw_data=repr(payload)[:200],
            expected_format="array of candle records"
        )

    closes = []
    for i, record in enumerate(payload):
        if not isinstance(record, (list, tuple)) or len(record) <= CANDLE_CLOSE_INDEX:
            raise MalformedDataError(
                f"Candle record {i} has no close field",
                raw_data=repr(record)[:200],
                expected_format="array with close at index 4"
            )
        closes.append(_to_float(record[CANDLE_CLOSE_INDEX], f"candle[{i}].close"))

    return closes[-limit:] if limit > 0 else closes


def parse_ticker_snapshots(payload: Any) -> list[Tick]:
    """
    Parse a 24h ticker statistics response into ticks.

    Expected format:
    [{"symbol": "BTCUSDT", "lastPrice": "43250.10", "priceChangePercent": "-1.2"}, ...]

    Entries that cannot be parsed are skipped individually.

    Raises:
        MalformedDataError: payload is not an array
    """
    if isinstance(payload, (str, bytes)):
        payload = _load_json(payload)

    if not isinstance(payload, list):
        raise MalformedDataError(
            f"Ticker payload must be an array, got {type(payload).__name__}",
            raw_data=repr(payload)[:200],
            expected_format="array of ticker objects"
        )

    ticks = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        result = parse_ticker_message({
            "s": entry.get("symbol"),
            "c": entry.get("lastPrice"),
            "P": entry.get("priceChangePercent"),
        })
        if result.is_tick:
            ticks.append(result.tick)
    return ticks
