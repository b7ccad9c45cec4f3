"""
Configuration defaults, loading and validation.
"""
from .defaults import MonitorConfig, get_default_config
from .loader import ConfigLoader

__all__ = ["MonitorConfig", "get_default_config", "ConfigLoader"]
