"""Directory query defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigurationError

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_SORT_FIELD = "username"
DEFAULT_SORT_DIRECTION = "asc"


@dataclass(frozen=True, slots=True)
class DirectoryConfig:
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    default_sort_field: str = DEFAULT_SORT_FIELD
    default_sort_direction: str = DEFAULT_SORT_DIRECTION

    def clamp_page_size(self, requested: int | None) -> int:
        if requested is None:
            return self.default_page_size
        return min(requested, self.max_page_size)


def get_directory_config() -> DirectoryConfig:
    raw = os.getenv("USERBRIDGE_MAX_PAGE_SIZE")
    if raw is None or not raw.strip():
        return DirectoryConfig()
    try:
        max_page_size = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"USERBRIDGE_MAX_PAGE_SIZE must be an integer: {raw!r}") from exc
    if max_page_size < 1:
        raise ConfigurationError("USERBRIDGE_MAX_PAGE_SIZE must be positive")
    return DirectoryConfig(max_page_size=max_page_size)
