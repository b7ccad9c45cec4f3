"""Unit tests for the command-line runner."""

import asyncio

import pytest

from ema_monitor import cli
from ema_monitor.engine import AggregationCoordinator


class TestArgumentParsing:
    """Test suite for flag handling."""

    def test_defaults(self) -> None:
        args = cli.build_parser().parse_args([])

        assert args.config_dir is None
        assert args.interval == 5.0
        assert args.log_level == "INFO"
        assert args.feed_log_level is None
        assert args.json_logs is False
        assert cli._overrides_from_args(args) == {}

    def test_overrides_from_flags(self) -> None:
        args = cli.build_parser().parse_args(
            ["--timeframe", "4h", "--symbols", "btcusdt, ethusdt,,"]
        )

        assert cli._overrides_from_args(args) == {
            "engine": {
                "default_timeframe": "4h",
                "default_symbols": ["btcusdt", " ethusdt"],
            }
        }

    def test_unknown_timeframe_rejected(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--timeframe", "15m"])


class TestMain:
    """Test suite for the entry point."""

    def test_invalid_config_exits_with_error(self, tmp_path) -> None:
        exit_code = cli.main(["--config-dir", str(tmp_path), "--symbols", "BTC/USDT"])
        assert exit_code == 2

    def test_unparseable_config_exits_with_error(self, tmp_path) -> None:
        (tmp_path / "monitor.yaml").write_text("engine: [\n")
        assert cli.main(["--config-dir", str(tmp_path)]) == 2

    def test_run_reports_until_cancelled(self, fakes) -> None:
        loader = fakes.FakeLoader(default=[1.0, 2.0, 3.0])
        coordinator = AggregationCoordinator(
            fakes.make_config(period=3), loader=loader, connect=fakes.FakeConnector()
        )

        async def scenario():
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(cli.run(coordinator, 0.01), timeout=0.05)

        asyncio.run(scenario())

        assert loader.opened and loader.closed
        assert coordinator.running is False
        assert coordinator.snapshot("BTCUSDT").ema == pytest.approx(2.0)
