"""
Allow/deny-list projection of request and response data.

Produces filtered copies of a source object containing only the
allow-listed paths. Values that are absent (MISSING) are skipped while
present None values are kept. An empty projection is reported as None
so callers can omit the whole section instead of logging an empty dict.
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from reqlog.paths import MISSING, get_path, set_path

# Custom accessors return MISSING to leave a path out of the projection.
FieldFilter = Callable[[Any, str], Any]

# Default field lists. Tuples so callers cannot mutate the process-wide defaults.
REQUEST_ALLOW: tuple[str, ...] = ("url", "headers", "method", "http_version", "original_url", "query")
RESPONSE_ALLOW: tuple[str, ...] = ("status_code",)
BODY_ALLOW: tuple[str, ...] = ()
BODY_DENY: tuple[str, ...] = ()
HEADER_DENYLIST: tuple[str, ...] = ()
IGNORED_ROUTES: tuple[str, ...] = ()


def default_request_filter(request: Any, prop_name: str) -> Any:
    """Read prop_name from the request snapshot."""
    return get_path(request, prop_name, MISSING)


def default_response_filter(response: Any, prop_name: str) -> Any:
    """Read prop_name from the captured response."""
    return get_path(response, prop_name, MISSING)


def strip_headers(headers: Any, denylist: Iterable[str]) -> Any:
    """Return a copy of headers without the denylisted names (case-insensitive)."""
    if not isinstance(headers, Mapping):
        return headers
    denied = {name.lower() for name in denylist if name}
    if not denied:
        return headers
    return {key: value for key, value in headers.items() if str(key).lower() not in denied}


def project(
    source: Any,
    allow: Iterable[str],
    field_filter: FieldFilter | None = None,
    header_denylist: Iterable[str] = (),
) -> dict[str, Any] | None:
    """
    Project source down to the allow-listed paths.

    Args:
        source: Object to read from (request snapshot, response, body)
        allow: Ordered dotted paths to include
        field_filter: Custom accessor; when given, it owns the header
            contents and the header denylist is not applied
        header_denylist: Header names removed from a projected "headers"

    Returns:
        A new dict, or None when no field was written
    """
    if source is None or source is MISSING:
        return None

    accessor = field_filter or default_request_filter
    projected: dict[str, Any] = {}
    written = False

    for path in allow:
        value = accessor(source, path)
        if value is MISSING:
            continue
        if path == "headers" and field_filter is None:
            value = strip_headers(value, header_denylist)
        set_path(projected, path, value)
        written = True

    return projected if written else None


def effective_allow(allow: Iterable[str], deny: Iterable[str]) -> list[str]:
    """Allow list minus deny entries, order preserved."""
    denied = set(deny)
    return [path for path in allow if path not in denied]


def project_body(
    body: Any,
    allow: list[str],
    deny: list[str],
    request_allows_body: bool,
    field_filter: FieldFilter | None = None,
) -> Any:
    """
    Project a request body.

    Rules, first match wins:
      - deny non-empty and allow empty: every body key not denied
      - "body" allow-listed on the request and no body lists: every key
      - otherwise: the body allow list (an explicit allow beats a deny)

    Returns MISSING when nothing should be logged.
    """
    if body is MISSING:
        return MISSING

    if not isinstance(body, Mapping):
        # Scalars and arrays have no fields to filter; log them whole or not at all.
        return body if request_allows_body and not allow and not deny else MISSING

    keys = list(body.keys())

    if deny and not allow:
        fields = effective_allow(keys, deny)
    elif request_allows_body and not allow and not deny:
        fields = keys
    else:
        fields = allow

    projected = project(body, fields, field_filter)
    return MISSING if projected is None else projected


def union(*lists: Iterable[str]) -> list[str]:
    """Ordered union without duplicates."""
    seen: dict[str, None] = {}
    for items in lists:
        for item in items:
            seen.setdefault(item, None)
    return list(seen)
