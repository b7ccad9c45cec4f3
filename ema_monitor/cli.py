"""Command-line runner: start the engine and log snapshots until interrupted."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import structlog

from .config.loader import ConfigLoader
from .engine import AggregationCoordinator
from .errors import ConfigurationError
from .logging.config import configure_logging

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ema-monitor",
        description="Live EMA deviation monitor for exchange tickers",
    )
    parser.add_argument("--config-dir", type=Path, default=None,
                        help="Directory containing monitor.yaml")
    parser.add_argument("--timeframe", choices=["1h", "2h", "4h", "1d"], default=None,
                        help="Active timeframe (overrides config)")
    parser.add_argument("--symbols", default=None,
                        help="Comma-separated symbols to track (overrides config)")
    parser.add_argument("--interval", type=float, default=5.0,
                        help="Seconds between snapshot reports")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--feed-log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Level for live feed and backfill events (defaults to --log-level)")
    parser.add_argument("--json-logs", action="store_true",
                        help="Emit JSON log lines")
    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict:
    engine = {}
    if args.timeframe:
        engine["default_timeframe"] = args.timeframe
    if args.symbols:
        engine["default_symbols"] = [s for s in args.symbols.split(",") if s.strip()]
    return {"engine": engine} if engine else {}


async def run(coordinator: AggregationCoordinator, interval: float) -> None:
    """Run until cancelled, reporting every snapshot each interval."""
    async with coordinator:
        while True:
            await asyncio.sleep(interval)
            for snapshot in coordinator.snapshots().values():
                logger.info("Snapshot", **snapshot.to_dict())


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(
        level=args.log_level,
        format_json=args.json_logs,
        feed_level=args.feed_log_level,
    )

    try:
        config = ConfigLoader.create(args.config_dir).load(_overrides_from_args(args))
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 2

    coordinator = AggregationCoordinator(config)
    try:
        asyncio.run(run(coordinator, args.interval))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
