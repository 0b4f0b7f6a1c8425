"""
Log level resolution.

Maps a response status code (or a user callable) to a level name, and
level names to stdlib logging levels.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

LevelOption = str | Callable[..., str]

DEFAULT_SUCCESS_LEVEL = "info"
DEFAULT_WARN_LEVEL = "warn"
DEFAULT_ERROR_LEVEL = "error"

# npm-style names used by most log shippers, plus the stdlib spellings
_LEVEL_NAMES: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "http": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
    "silly": 5,
}


def _tier(status_levels: Any, name: str, default: str) -> str:
    if isinstance(status_levels, Mapping):
        value = status_levels.get(name)
    else:
        value = getattr(status_levels, name, None)
    return value or default


def level_from_status(status_code: int, status_levels: Any = True) -> str:
    """
    Pick the success/warn/error tier for a status code.

    Thresholds are applied in ascending order and each match overwrites
    the previous one, so a 500 lands on the error tier.
    """
    # Informational (>= 100) and anything below it share the success tier.
    level = _tier(status_levels, "success", DEFAULT_SUCCESS_LEVEL)
    if status_code >= 400:
        level = _tier(status_levels, "warn", DEFAULT_WARN_LEVEL)
    if status_code >= 500:
        level = _tier(status_levels, "error", DEFAULT_ERROR_LEVEL)
    return level


def resolve_level(
    level: LevelOption | None,
    status_levels: Any,
    request: Any,
    response: Any,
    exc: BaseException | None = None,
    default: str = DEFAULT_SUCCESS_LEVEL,
) -> str:
    """
    Resolve the level for one log entry.

    Args:
        level: Static level name or callable(request, response[, exc])
        status_levels: False, True, or a success/warn/error tier mapping
        request: Request passed to a level callable
        response: Captured response (None on the error path)
        exc: Exception on the error path
        default: Level used when nothing else applies

    Returns:
        Level name
    """
    if callable(level):
        return level(request, response, exc) if exc is not None else level(request, response)
    if status_levels and response is not None:
        return level_from_status(response.status_code, status_levels)
    return level or default


def to_logging_level(level: str | int) -> int:
    """Translate a level name into a stdlib logging level (INFO if unknown)."""
    if isinstance(level, int):
        return level
    name = str(level).lower()
    if name in _LEVEL_NAMES:
        return _LEVEL_NAMES[name]
    resolved = logging.getLevelName(name.upper())
    return resolved if isinstance(resolved, int) else logging.INFO
