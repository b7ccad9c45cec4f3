"""
Market data models, ingestion parsers and rolling price histories.

Handles validation of inbound ticker and candle payloads and owns the
bounded per-instrument, per-timeframe price windows used by the engine.
"""
