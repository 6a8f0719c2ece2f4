"""Errors raised while reading furnitrack settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """A setting is present but cannot be used; ``names`` lists the settings involved."""

    def __init__(self, message: str, *, names: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.names = tuple(names)


class MissingConfigurationError(ConfigurationError):
    """Required settings are unset or blank."""

    def __init__(self, names: Iterable[str]) -> None:
        missing = sorted(names)
        super().__init__(f"Missing configuration for: {', '.join(missing)}", names=missing)
