"""
Metadata assembly for log entries.

Merges the projected request/response sections, response time, dynamic
and base metadata, and nests the result under the configured meta field.
"""

from collections.abc import Mapping
from typing import Any

from reqlog.paths import PathLike, nest


def _merge(target: dict[str, Any], extra: Any) -> dict[str, Any]:
    if isinstance(extra, Mapping):
        target.update(extra)
    return target


def assemble_meta(
    request_part: dict[str, Any] | None,
    response_part: dict[str, Any] | None,
    response_time: float | None,
    *,
    request_field: str | None = "req",
    response_field: str | None = "res",
    include_response_time: bool = True,
    dynamic: Mapping[str, Any] | None = None,
    base: Mapping[str, Any] | None = None,
    meta_field: PathLike | None = "meta",
    include_meta: bool = True,
) -> dict[str, Any]:
    """
    Build the metadata mapping for a success-path entry.

    Args:
        request_part: Projected request (None when nothing was projected)
        response_part: Projected response (None when nothing was projected)
        response_time: Elapsed milliseconds
        request_field: Key for the request section; None omits it
        response_field: Key for the response section; None omits it.
            When equal to request_field the two sections are merged.
        include_response_time: False when the response section already
            carries response_time
        dynamic: Result of the dynamic_meta callback, merged shallowly
        base: Static fields merged last, winning on key collisions
        meta_field: Dotted path or segment list to nest under; None keeps
            everything at the top level
        include_meta: False drops everything except base fields

    Returns:
        The final metadata mapping
    """
    meta: dict[str, Any] = {}

    if include_meta:
        data: dict[str, Any] = {}

        # A section that projected nothing is left out entirely.
        if request_field is not None and request_part is not None:
            data[request_field] = request_part

        if response_field is not None and response_part is not None:
            if response_field == request_field:
                data[response_field] = {**(request_part or {}), **response_part}
            else:
                data[response_field] = response_part

        if include_response_time and response_time is not None:
            data["response_time"] = response_time

        _merge(data, dynamic)
        meta = nest(data, meta_field)

    return _merge(dict(meta), base)


def assemble_error_meta(
    exception_meta: Mapping[str, Any],
    request_part: dict[str, Any] | None,
    *,
    blacklisted_fields: list[str] | tuple[str, ...] = (),
    request_field: str | None = "req",
    dynamic: Mapping[str, Any] | None = None,
    base: Mapping[str, Any] | None = None,
    meta_field: PathLike | None = "meta",
    include_meta: bool = True,
) -> dict[str, Any]:
    """Build the metadata mapping for an error-path entry (no response section)."""
    denied = set(blacklisted_fields)
    data = {key: value for key, value in exception_meta.items() if key not in denied}

    if include_meta:
        if request_field is not None and request_part is not None:
            data[request_field] = request_part
        _merge(data, dynamic)

    return _merge(dict(nest(data, meta_field)), base)
