"""Indicator calculations for price histories"""

from .ema import compute_ema, compute_ema_percent_diff

__all__ = [
    "compute_ema",
    "compute_ema_percent_diff",
]
