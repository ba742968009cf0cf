from __future__ import annotations

from typing import Any


class BoidsError(Exception):
    """Base class for all boidsim exceptions."""


class ConfigurationError(BoidsError):
    """Raised when configuration values are invalid or missing.

    Accepts either a plain message or a parameter name plus a reason:

        raise ConfigurationError("config document must be a mapping")
        raise ConfigurationError("move_speed", "expected a number")
    """

    def __init__(self, param_name: str | None = None, reason: str | None = None):
        if param_name and reason:
            message = f"Invalid configuration for '{param_name}': {reason}"
            self.param_name = param_name
        else:
            message = param_name if param_name else "Invalid configuration"
            self.param_name = None
        super().__init__(message)


class WorldBoundsError(ConfigurationError):
    """Raised when the viewport size is missing or unusable."""

    def __init__(self, bounds: Any, reason: str):
        self.bounds = bounds
        super().__init__(f"Invalid world bounds {bounds!r}: {reason}")
