"""
Dotted-path access over nested request/response data.

Paths are either a dotted string ("user.name"), a plain key, or a list
of segments. Mappings are read by key, sequences by index, anything
else by attribute. Absent values are reported as MISSING so a stored
None (a JSON null) stays loggable.
"""

from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any

PathLike = str | Sequence[str]


class _Missing:
    """Marks a value that is absent, as opposed to present and None."""

    def __repr__(self) -> str:
        return "<missing>"

    def __str__(self) -> str:
        return ""

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def split_path(path: PathLike) -> list[str]:
    """Split a dotted string (or pass through a segment list)."""
    if isinstance(path, str):
        return [segment for segment in path.split(".") if segment]
    return [str(segment) for segment in path]


def _get_segment(obj: Any, segment: str, default: Any) -> Any:
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(segment, default)
    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
        if segment.lstrip("-").isdigit():
            try:
                return obj[int(segment)]
            except IndexError:
                return default
        return default
    return getattr(obj, segment, default)


def get_path(obj: Any, path: PathLike, default: Any = None) -> Any:
    """
    Read a value at a nested path without raising on missing segments.

    A key that exists verbatim in a mapping wins over dotted splitting,
    so header names like "x.forwarded" still resolve.

    Args:
        obj: Mapping, sequence or plain object to read from
        path: Dotted string, plain key or list of segments
        default: Returned when any segment is missing

    Returns:
        The value found, or default
    """
    if isinstance(path, str) and isinstance(obj, Mapping) and path in obj:
        return obj[path]

    current = obj
    for segment in split_path(path):
        current = _get_segment(current, segment, MISSING)
        if current is MISSING:
            return default
    return current


def set_path(obj: MutableMapping, path: PathLike, value: Any) -> None:
    """Write value at path, creating intermediate dicts as needed."""
    segments = split_path(path)
    if not segments:
        return

    current = obj
    for segment in segments[:-1]:
        child = current.get(segment)
        if not isinstance(child, MutableMapping):
            child = {}
            current[segment] = child
        current = child
    current[segments[-1]] = value


def nest(value: Any, path: PathLike | None) -> Any:
    """
    Wrap value under path, outermost segment first.

    nest({"a": 1}, "outer.inner") -> {"outer": {"inner": {"a": 1}}}
    A None or empty path returns value unchanged.
    """
    if not path:
        return value
    for segment in reversed(split_path(path)):
        value = {segment: value}
    return value

