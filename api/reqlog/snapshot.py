"""
Plain-dict snapshot of an ASGI HTTP request for projection and templates.
"""

import json
from typing import Any
from urllib.parse import parse_qsl

from reqlog.capture import decode_headers
from reqlog.overrides import STATE_KEY
from reqlog.paths import MISSING


def _query_string(scope: dict[str, Any]) -> str:
    return scope.get("query_string", b"").decode("latin-1")


def _query_dict(query_string: str) -> dict[str, Any]:
    query: dict[str, Any] = {}
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        if key in query:
            existing = query[key]
            query[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            query[key] = value
    return query


def parse_request_body(raw: bytes, content_type: str) -> Any:
    """
    Decode a request body the way a body parser would.

    JSON and urlencoded forms become dicts; other payloads are not
    parsed and yield MISSING, as does an empty or unparseable body.
    A JSON null body is returned as None.
    """
    if not raw:
        return MISSING
    content_type = content_type.lower()
    if "json" in content_type:
        try:
            return json.loads(raw)
        except ValueError:
            return MISSING
    if "application/x-www-form-urlencoded" in content_type:
        return _query_dict(raw.decode("latin-1"))
    return MISSING


def request_snapshot(scope: dict[str, Any], body: bytes = b"") -> dict[str, Any]:
    """
    Build the loggable view of a request.

    Keys: method, url, original_url, path, http_version, headers, query,
    params, client, body, state. body is left out when the request had
    none that could be parsed.
    """
    headers = decode_headers(scope.get("headers"))
    query_string = _query_string(scope)
    suffix = f"?{query_string}" if query_string else ""

    path = scope.get("path", "")
    raw_path = scope.get("raw_path")
    original_path = raw_path.decode("latin-1") if raw_path else scope.get("root_path", "") + path

    client = scope.get("client")
    state = {key: value for key, value in scope.get("state", {}).items() if key != STATE_KEY}

    snapshot = {
        "method": scope.get("method"),
        "url": path + suffix,
        "original_url": original_path + suffix,
        "path": path,
        "http_version": scope.get("http_version"),
        "headers": headers,
        "query": _query_dict(query_string),
        "params": dict(scope.get("path_params") or {}),
        "client": client[0] if client else None,
        "state": state,
    }
    parsed_body = parse_request_body(body, headers.get("content-type", ""))
    if parsed_body is not MISSING:
        snapshot["body"] = parsed_body
    return snapshot
