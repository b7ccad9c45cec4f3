"""
Caller input validation errors.

Public operations that receive bad input report failure through their
return value; these exceptions carry the detail into the log channel.
"""

from typing import Any, Optional


class ValidationError(Exception):
    """Base class for rejected caller input."""

    def __init__(self, message: str, value: Any = None,
                 context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.value = value
        self.context = context or {}
        self.recoverable = True


class InvalidSymbolError(ValidationError):
    """Empty or non-alphanumeric instrument symbol."""


class InvalidTimeframeError(ValidationError):
    """Timeframe outside the supported vocabulary."""


class ConfigurationError(ValidationError):
    """Configuration file or overrides failed validation."""

    def __init__(self, message: str, issues: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.issues = issues or []
