"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

from ..data.models import Timeframe


@dataclass(frozen=True)
class ConfigIssue:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_ema_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate EMA parameters."""
        errors = []

        if "period" in params:
            value = params["period"]
            if not _is_int(value) or value <= 0:
                errors.append(ConfigIssue(
                    field="ema.period",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_history_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate price history parameters."""
        errors = []

        if "capacity" in params:
            value = params["capacity"]
            if not _is_int(value) or value <= 0:
                errors.append(ConfigIssue(
                    field="history.capacity",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_feed_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate live feed parameters."""
        errors = []

        if "ws_base_url" in params:
            value = params["ws_base_url"]
            if not isinstance(value, str) or not value.startswith(("ws://", "wss://")):
                errors.append(ConfigIssue(
                    field="feed.ws_base_url",
                    message="Must be a ws:// or wss:// URL",
                    value=value
                ))

        if "reconnect_delay_seconds" in params:
            value = params["reconnect_delay_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ConfigIssue(
                    field="feed.reconnect_delay_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "ping_interval_seconds" in params:
            value = params["ping_interval_seconds"]
            if value is not None and (not _is_number(value) or value <= 0):
                errors.append(ConfigIssue(
                    field="feed.ping_interval_seconds",
                    message="Must be a positive number or null",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_backfill_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate historical backfill parameters."""
        errors = []

        if "rest_base_url" in params:
            value = params["rest_base_url"]
            if not isinstance(value, str) or not value.startswith(("http://", "https://")):
                errors.append(ConfigIssue(
                    field="backfill.rest_base_url",
                    message="Must be an http:// or https:// URL",
                    value=value
                ))

        if "limit" in params:
            value = params["limit"]
            if not _is_int(value) or value <= 0 or value > 1000:
                errors.append(ConfigIssue(
                    field="backfill.limit",
                    message="Must be an integer between 1 and 1000",
                    value=value
                ))

        if "timeout_seconds" in params:
            value = params["timeout_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ConfigIssue(
                    field="backfill.timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_engine_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate coordinator parameters."""
        errors = []

        if "default_timeframe" in params:
            value = params["default_timeframe"]
            if value not in [tf.value for tf in Timeframe]:
                errors.append(ConfigIssue(
                    field="engine.default_timeframe",
                    message="Must be one of 1h, 2h, 4h, 1d",
                    value=value
                ))

        if "default_symbols" in params:
            value = params["default_symbols"]
            if not isinstance(value, (list, tuple)) or not all(
                isinstance(s, str) and s.strip().isalnum() and s.isascii() for s in value
            ):
                errors.append(ConfigIssue(
                    field="engine.default_symbols",
                    message="Must be a list of alphanumeric symbols",
                    value=value
                ))

        if "seed_tickers" in params:
            value = params["seed_tickers"]
            if not isinstance(value, bool):
                errors.append(ConfigIssue(
                    field="engine.seed_tickers",
                    message="Must be a boolean",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ConfigIssue]:
        """Validate complete configuration."""
        errors = []

        for section in ("ema", "history", "feed", "backfill", "engine"):
            if section in config and not isinstance(config[section], dict):
                errors.append(ConfigIssue(
                    field=section,
                    message="Must be a mapping",
                    value=config[section]
                ))
        if errors:
            return errors

        if "ema" in config:
            errors.extend(ConfigValidator.validate_ema_params(config["ema"]))

        if "history" in config:
            errors.extend(ConfigValidator.validate_history_params(config["history"]))

        if "feed" in config:
            errors.extend(ConfigValidator.validate_feed_params(config["feed"]))

        if "backfill" in config:
            errors.extend(ConfigValidator.validate_backfill_params(config["backfill"]))

        if "engine" in config:
            errors.extend(ConfigValidator.validate_engine_params(config["engine"]))

        ema_period = config.get("ema", {}).get("period")
        capacity = config.get("history", {}).get("capacity")
        if _is_int(ema_period) and _is_int(capacity) and ema_period > capacity:
            errors.append(ConfigIssue(
                field="ema.period",
                message="Must not exceed history.capacity",
                value=ema_period
            ))

        return errors
