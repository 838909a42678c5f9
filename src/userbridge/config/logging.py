"""Logging setup for the userbridge CLI and tests."""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# Per-request INFO lines from the HTTP stack drown out saga logs.
NOISY_LOGGERS = ("httpx", "httpcore")


def _level_from_env() -> int:
    raw = os.getenv("USERBRIDGE_LOG_LEVEL")
    if raw is None or not raw.strip():
        return logging.INFO
    level = logging.getLevelNamesMapping().get(raw.strip().upper())
    if level is None:
        raise ConfigurationError(f"Unknown USERBRIDGE_LOG_LEVEL: {raw!r}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once.

    ``level`` defaults to ``USERBRIDGE_LOG_LEVEL`` (INFO when unset). Pass
    ``force=True`` to reconfigure during tests.
    """

    resolved = _level_from_env() if level is None else level
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
