"""Root logging setup for the furnitrack CLI."""

from __future__ import annotations

import logging
from typing import Final

from .env import optional_env_var
from .errors import ConfigurationError

LOG_LEVEL_ENV: Final[str] = "FURNITRACK_LOG_LEVEL"

# Per-request and per-statement chatter from the HTTP client and the SQLite driver.
_LIBRARY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")


def log_level_from_env(default: int = logging.INFO) -> int:
    raw = optional_env_var(LOG_LEVEL_ENV)
    if raw is None:
        return default
    level = logging.getLevelName(raw.upper())
    if not isinstance(level, int):
        raise ConfigurationError(
            f"{LOG_LEVEL_ENV} must name a logging level, got {raw!r}", names=(LOG_LEVEL_ENV,)
        )
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> int:
    """Configure the root logger and return the level in effect.

    ``level`` defaults to ``FURNITRACK_LOG_LEVEL`` (INFO when unset). Library loggers
    stay at WARNING unless DEBUG output was asked for.
    """

    resolved = log_level_from_env() if level is None else level
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    library_level = resolved if resolved <= logging.DEBUG else logging.WARNING
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    return resolved
