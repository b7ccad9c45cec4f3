"""
EMA Monitor - Real-time Market Data Aggregation and Indicator Engine

Ingests live per-symbol ticker streams, reconciles them with historical
candle closes, keeps bounded per-timeframe price histories and publishes
an EMA deviation snapshot for every tracked instrument.
"""

__version__ = "0.1.0"
__author__ = "EMA Monitor Team"
