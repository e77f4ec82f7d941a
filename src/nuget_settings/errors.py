from __future__ import annotations

from pathlib import Path


class NuGetSettingsError(Exception):
    """Base class for NuGet settings errors."""


class NuGetConfigurationError(NuGetSettingsError):
    """Raised when a config file cannot be read, parsed or validated."""

    def __init__(self, message: str, path: str | Path | None = None):
        if path is not None:
            message = f"{message} Path: '{path}'."
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class InvalidSettingOperation(NuGetSettingsError):
    """Raised when a mutation is not allowed on the target setting."""


class UnsupportedSettingOperation(NuGetSettingsError, NotImplementedError):
    """Raised when mutating settings that were loaded as immutable."""
