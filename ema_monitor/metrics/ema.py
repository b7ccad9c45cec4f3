"""EMA (Exponential Moving Average) and EMA deviation calculations"""

from collections.abc import Sequence


def compute_ema(prices: Sequence[float], period: int = 50) -> float:
    """
    Calculate trailing EMA over a chronological price sequence

    Seed = SMA of the first `period` prices, then for every later price
    EMA = price * k + EMA * (1 - k), k = 2 / (period + 1)

    Args:
        prices: Closing prices, oldest first
        period: EMA period (default 50)

    Returns:
        EMA value, or 0.0 if fewer than `period` prices are available
    """
    if isinstance(period, bool) or not isinstance(period, int) or period <= 0:
        raise ValueError(f"period must be a positive integer, got {period!r}")

    if len(prices) < period:
        return 0.0

    multiplier = 2.0 / (period + 1)

    ema = 0.0
    for i, price in enumerate(prices):
        if i < period:
            ema += price
            if i == period - 1:
                ema /= period
        else:
            ema = price * multiplier + ema * (1 - multiplier)

    return ema


def compute_ema_percent_diff(current_price: float, ema: float) -> float:
    """
    Calculate percentage distance of the current price from the EMA

    diff = (current_price - ema) / ema * 100

    Args:
        current_price: Latest price
        ema: EMA value

    Returns:
        Percent difference, 0.0 when ema is 0 (no EMA yet)
    """
    if ema == 0:
        return 0.0

    return (current_price - ema) / ema * 100.0
