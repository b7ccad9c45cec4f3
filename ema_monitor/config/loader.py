"""Configuration loader with defaults, file and runtime override precedence."""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigurationError
from .defaults import (
    BackfillParams,
    EMAParams,
    EngineParams,
    FeedParams,
    HistoryParams,
    MonitorConfig,
    get_default_config,
)
from .validation import ConfigValidator

CONFIG_FILENAME = "monitor.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Builds a MonitorConfig from defaults, monitor.yaml and overrides."""

    config_dir: Path
    defaults: MonitorConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from monitor.yaml, empty if the file is absent."""
        config_file = self.config_dir / CONFIG_FILENAME

        if not config_file.exists():
            return {}

        try:
            with open(config_file) as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Cannot parse {config_file}: {e}",
                context={"path": str(config_file)}
            ) from e

        if file_config is None:
            return {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(
                f"{config_file} must contain a mapping",
                value=file_config,
                context={"path": str(config_file)}
            )
        return file_config

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Runtime overrides (highest priority)
        2. monitor.yaml in the config directory
        3. Built-in defaults (lowest priority)
        """
        config = asdict(self.defaults)

        config = self._deep_merge(config, self.load_file_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(self, overrides: Optional[dict[str, Any]] = None) -> MonitorConfig:
        """
        Load, validate and build the effective configuration.

        Raises:
            ConfigurationError: merged configuration failed validation
        """
        merged = self.merge_config(overrides)

        issues = ConfigValidator.validate_config(merged)
        if issues:
            messages = [f"{issue.field}: {issue.message} (got: {issue.value})" for issue in issues]
            raise ConfigurationError(
                "Invalid configuration: " + "; ".join(messages),
                issues=issues
            )

        return self._build(merged)

    def _build(self, config: dict[str, Any]) -> MonitorConfig:
        """Convert a merged dictionary back into frozen dataclasses."""
        try:
            engine = dict(config["engine"])
            engine["default_symbols"] = tuple(
                s.strip().upper() for s in engine["default_symbols"]
            )
            return MonitorConfig(
                ema=EMAParams(**config["ema"]),
                history=HistoryParams(**config["history"]),
                feed=FeedParams(**config["feed"]),
                backfill=BackfillParams(**config["backfill"]),
                engine=EngineParams(**engine),
            )
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
